# app/services/rule_pack_service.py
"""
Rule Pack Version Manager

Rule packs are versioned, effective-dated requirement sets per credential.
Packs of one credential never overlap and at most one is open-ended
(effective_to is null). A new pack must start after every existing pack;
creating it closes the open one the day before the new pack starts.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional
from dateutil.relativedelta import relativedelta
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.core.exceptions import EngineError, NotFoundError, ValidationFailure
from app.core.jsonfields import dump_json
from app.core.utils import utcnow
from app.models.credential import Credential, RulePack
from app.services.compliance_gap import (
    Requirements,
    requirements_from_credential,
    requirements_from_rules,
)

logger = logging.getLogger(__name__)


@dataclass
class ResolvedRules:
    """The rules in force for a credential on a given date"""

    credential_id: int
    credential_name: str
    date: date
    source: str  # "rule_pack" or "credential_defaults"
    rules: Dict[str, Any]
    version: Optional[int] = None
    pack_id: Optional[int] = None
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    message: Optional[str] = None


def _normalize_rules(rules: Any) -> Dict[str, Any]:
    """Rules must be a JSON object; a JSON string is parsed first"""
    if isinstance(rules, str):
        try:
            rules = json.loads(rules)
        except ValueError as e:
            raise ValidationFailure(f"Rules payload is not valid JSON: {e}", field="rules")
    if not isinstance(rules, dict):
        raise ValidationFailure("Rules payload must be a JSON object", field="rules")
    return rules


def credential_default_rules(credential: Credential) -> Dict[str, Any]:
    return {
        "hoursRequired": credential.hours_required,
        "ethicsHours": credential.ethics_hours,
        "structuredHours": credential.structured_hours,
        "cycleLengthYears": credential.cycle_length_years,
        "categoryRules": credential.get_category_rules(),
    }


class RulePackService:
    """Creates, lists and resolves credential rule packs"""

    def __init__(self, db: Session):
        self.db = db

    def _get_credential(self, credential_id: int, lock: bool = False) -> Credential:
        query = self.db.query(Credential).filter(Credential.id == credential_id)
        if lock:
            # Serializes pack creation per credential
            query = query.with_for_update()
        credential = query.first()
        if not credential:
            raise NotFoundError("Credential", credential_id)
        return credential

    def create_rule_pack(
        self,
        credential_id: int,
        name: str,
        rules: Any,
        effective_from: date,
        effective_to: Optional[date] = None,
        changelog: Optional[str] = None,
    ) -> RulePack:
        """
        Insert the next version of a credential's rule pack.

        Runs as one transaction: lock the credential, close the open pack,
        insert the new one. Any failure rolls everything back.

        Raises:
            NotFoundError: credential does not exist
            ValidationFailure: bad name, rules payload or date range
        """
        if not name or not name.strip():
            raise ValidationFailure("Rule pack name is required", field="name")
        rules = _normalize_rules(rules)
        if effective_to is not None and effective_to < effective_from:
            raise ValidationFailure(
                "effective_to must not be before effective_from", field="effective_to"
            )

        try:
            self._get_credential(credential_id, lock=True)

            latest_version = (
                self.db.query(func.max(RulePack.version))
                .filter(RulePack.credential_id == credential_id)
                .scalar()
            )
            next_version = (latest_version or 0) + 1

            latest_start = (
                self.db.query(RulePack)
                .filter(RulePack.credential_id == credential_id)
                .order_by(RulePack.effective_from.desc(), RulePack.version.desc())
                .first()
            )
            if latest_start is not None and latest_start.effective_from >= effective_from:
                raise ValidationFailure(
                    f"New pack must start after rule pack v{latest_start.version} "
                    f"(effective from {latest_start.effective_from.isoformat()})",
                    field="effective_from",
                )

            overlapping = (
                self.db.query(RulePack)
                .filter(
                    RulePack.credential_id == credential_id,
                    RulePack.effective_to.isnot(None),
                    RulePack.effective_to >= effective_from,
                )
                .order_by(RulePack.version)
                .first()
            )
            if overlapping is not None:
                raise ValidationFailure(
                    f"New pack overlaps rule pack v{overlapping.version} "
                    f"(effective to {overlapping.effective_to.isoformat()})",
                    field="effective_from",
                )

            open_packs = (
                self.db.query(RulePack)
                .filter(
                    RulePack.credential_id == credential_id,
                    RulePack.effective_to.is_(None),
                )
                .all()
            )
            closing_date = effective_from - relativedelta(days=1)
            for pack in open_packs:
                pack.effective_to = closing_date
                logger.info(
                    f"Closing rule pack v{pack.version} for credential {credential_id} "
                    f"on {closing_date.isoformat()}"
                )

            pack = RulePack(
                credential_id=credential_id,
                version=next_version,
                name=name.strip(),
                rules=dump_json(rules),
                effective_from=effective_from,
                effective_to=effective_to,
                changelog=changelog,
                created_at=utcnow(),
            )
            self.db.add(pack)
            self.db.commit()
            self.db.refresh(pack)

        except EngineError:
            self.db.rollback()
            raise
        except Exception as e:
            logger.error(f"Failed to create rule pack for credential {credential_id}: {e}")
            self.db.rollback()
            raise

        logger.info(
            f"Created rule pack v{pack.version} for credential {credential_id} "
            f"effective {effective_from.isoformat()}"
        )
        return pack

    def get_rule_pack(self, pack_id: int) -> RulePack:
        pack = self.db.query(RulePack).filter(RulePack.id == pack_id).first()
        if not pack:
            raise NotFoundError("Rule pack", pack_id)
        return pack

    def list_rule_packs(self, credential_id: Optional[int] = None) -> List[RulePack]:
        query = self.db.query(RulePack)
        if credential_id is not None:
            query = query.filter(RulePack.credential_id == credential_id)
        return query.order_by(
            RulePack.credential_id.asc(), RulePack.effective_from.desc()
        ).all()

    def find_pack_in_force(self, credential_id: int, on_date: date) -> Optional[RulePack]:
        """The pack whose [effective_from, effective_to] contains on_date"""
        candidates = (
            self.db.query(RulePack)
            .filter(
                RulePack.credential_id == credential_id,
                RulePack.effective_from <= on_date,
            )
            .order_by(RulePack.effective_from.desc(), RulePack.version.desc())
            .all()
        )
        for pack in candidates:
            if pack.covers(on_date):
                return pack
        return None

    def resolve_rule_pack(
        self, credential_id: int, on_date: Optional[date] = None
    ) -> ResolvedRules:
        """
        Rules in force on a date. With no pack covering the date the
        credential's own columns are returned; that is an expected
        onboarding state, not an error.
        """
        if on_date is None:
            on_date = utcnow().date()

        credential = self._get_credential(credential_id)
        pack = self.find_pack_in_force(credential_id, on_date)

        if pack is None:
            return ResolvedRules(
                credential_id=credential.id,
                credential_name=credential.name,
                date=on_date,
                source="credential_defaults",
                rules=credential_default_rules(credential),
                message=f"No rule pack in force on {on_date.isoformat()}; using credential defaults",
            )

        return ResolvedRules(
            credential_id=credential.id,
            credential_name=credential.name,
            date=on_date,
            source="rule_pack",
            rules=pack.get_rules(),
            version=pack.version,
            pack_id=pack.id,
            effective_from=pack.effective_from,
            effective_to=pack.effective_to,
        )

    def requirements_for(
        self, credential: Credential, on_date: Optional[date] = None
    ) -> Requirements:
        """Hour requirements for the credential from the pack in force"""
        if on_date is None:
            on_date = utcnow().date()
        pack = self.find_pack_in_force(credential.id, on_date)
        if pack is None:
            return requirements_from_credential(credential)
        return requirements_from_rules(
            credential, pack.get_rules(), rule_pack_id=pack.id, rule_pack_version=pack.version
        )
