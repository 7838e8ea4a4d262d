# app/services/activity_service.py
"""
Activity catalog and credit mapping store.

Activities are created as drafts together with their credit mappings and
move draft -> review -> published. Only published activities are visible to
the credit resolver and the recommendation scorer, so publishing requires a
title and at least one active credit mapping.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy.orm import Session
from app.core.exceptions import EngineError, NotFoundError, ValidationFailure
from app.core.jsonfields import dump_json
from app.core.utils import utcnow
from app.models.activity import Activity, Assessment, CreditMapping
from app.models.credential import Credential

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = ("webinar", "video", "article", "assessment", "bundle")

# publish_status -> statuses it may move to
STATUS_TRANSITIONS = {
    "draft": ("review", "published", "archived"),
    "review": ("draft", "published", "archived"),
    "published": ("archived",),
    "archived": (),
}


def _clean_codes(values: Optional[Iterable[str]], field: str) -> Optional[List[str]]:
    """Strip and upper-case jurisdiction codes; an empty list means no restriction"""
    if values is None:
        return None
    cleaned = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            raise ValidationFailure(f"{field} entries must be non-empty codes", field=field)
        cleaned.append(value.strip().upper())
    return cleaned or None


class ActivityService:
    def __init__(self, db: Session):
        self.db = db

    def get_activity(self, activity_id: int) -> Activity:
        activity = self.db.query(Activity).filter(Activity.id == activity_id).first()
        if not activity:
            raise NotFoundError("Activity", activity_id)
        return activity

    def list_activities(
        self,
        publish_status: Optional[str] = None,
        activity_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Activity]:
        """Active catalog entries, newest first"""
        query = self.db.query(Activity).filter(Activity.active == True)  # noqa: E712
        if publish_status:
            query = query.filter(Activity.publish_status == publish_status)
        if activity_type:
            query = query.filter(Activity.type == activity_type)
        return (
            query.order_by(Activity.created_at.desc(), Activity.id.desc())
            .offset(offset)
            .limit(min(limit, 100))
            .all()
        )

    def _build_mapping(self, activity_id: int, mapping: Dict[str, Any]) -> CreditMapping:
        country = (mapping.get("country") or "").strip().upper()
        if not country:
            raise ValidationFailure("Credit mapping country is required", field="country")

        category = (mapping.get("credit_category") or "").strip()
        if not category:
            raise ValidationFailure("Credit category is required", field="credit_category")

        amount = mapping.get("credit_amount")
        if amount is None or amount <= 0:
            raise ValidationFailure("Credit amount must be positive", field="credit_amount")

        credential_id = mapping.get("credential_id")
        if credential_id is not None:
            exists = self.db.query(Credential.id).filter(Credential.id == credential_id).first()
            if not exists:
                raise NotFoundError("Credential", credential_id)

        return CreditMapping(
            activity_id=activity_id,
            country=country,
            state_province=dump_json(
                _clean_codes(mapping.get("state_province"), "state_province")
            ),
            exclusions=dump_json(_clean_codes(mapping.get("exclusions"), "exclusions")),
            credential_id=credential_id,
            credit_category=category,
            credit_amount=amount,
            credit_unit=mapping.get("credit_unit") or "hours",
            structured_flag=mapping.get("structured_flag") or "true",
            validation_method=mapping.get("validation_method") or "attendance",
        )

    def create_activity(
        self,
        type: str,
        title: str,
        description: Optional[str] = None,
        provider: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        tags: Optional[List[str]] = None,
        jurisdiction_scope: Optional[List[str]] = None,
        assessment_id: Optional[int] = None,
        credit_mappings: Optional[List[Dict[str, Any]]] = None,
    ) -> Activity:
        """
        Add a draft activity with its credit mappings in one transaction.

        Raises:
            ValidationFailure: bad type, title or mapping
            NotFoundError: referenced assessment or credential does not exist
        """
        if type not in ACTIVITY_TYPES:
            raise ValidationFailure(f"Unknown activity type: {type}", field="type")
        if not title or not title.strip():
            raise ValidationFailure("Activity title is required", field="title")

        try:
            if assessment_id is not None:
                exists = (
                    self.db.query(Assessment.id).filter(Assessment.id == assessment_id).first()
                )
                if not exists:
                    raise NotFoundError("Assessment", assessment_id)

            activity = Activity(
                type=type,
                title=title.strip(),
                description=description,
                provider=provider,
                duration_minutes=duration_minutes,
                publish_status="draft",
                tags=dump_json(tags),
                jurisdiction_scope=dump_json(_clean_codes(jurisdiction_scope, "jurisdiction_scope")),
                assessment_id=assessment_id,
            )
            self.db.add(activity)
            self.db.flush()

            for mapping in credit_mappings or []:
                self.db.add(self._build_mapping(activity.id, mapping))

            self.db.commit()
            self.db.refresh(activity)
            self.db.expire(activity, ["credit_mappings"])

        except EngineError:
            self.db.rollback()
            raise
        except Exception as e:
            logger.error(f"Failed to create activity '{title}': {e}")
            self.db.rollback()
            raise

        logger.info(
            f"Created draft activity {activity.id} '{activity.title}' "
            f"with {len(activity.credit_mappings)} credit mapping(s)"
        )
        return activity

    def add_credit_mapping(self, activity_id: int, mapping: Dict[str, Any]) -> CreditMapping:
        activity = self.get_activity(activity_id)
        if activity.publish_status == "archived":
            raise ValidationFailure(
                "Archived activities cannot take new credit mappings", field="publish_status"
            )

        try:
            credit_mapping = self._build_mapping(activity.id, mapping)
            self.db.add(credit_mapping)
            self.db.commit()
            self.db.refresh(credit_mapping)
        except EngineError:
            self.db.rollback()
            raise
        except Exception as e:
            logger.error(f"Failed to add credit mapping to activity {activity_id}: {e}")
            self.db.rollback()
            raise

        self.db.expire(activity, ["credit_mappings"])
        logger.info(
            f"Added credit mapping {credit_mapping.id} to activity {activity_id}: "
            f"{credit_mapping.country} {credit_mapping.credit_category} {credit_mapping.credit_amount}"
        )
        return credit_mapping

    def deactivate_credit_mapping(self, activity_id: int, mapping_id: int) -> CreditMapping:
        """Mappings are switched off rather than deleted"""
        mapping = (
            self.db.query(CreditMapping)
            .filter(CreditMapping.id == mapping_id, CreditMapping.activity_id == activity_id)
            .first()
        )
        if not mapping:
            raise NotFoundError("Credit mapping", mapping_id)

        try:
            mapping.active = False
            self.db.commit()
        except Exception as e:
            logger.error(f"Failed to deactivate credit mapping {mapping_id}: {e}")
            self.db.rollback()
            raise

        logger.info(f"Deactivated credit mapping {mapping_id} on activity {activity_id}")
        return mapping

    def change_status(self, activity_id: int, new_status: str) -> Activity:
        """
        Move an activity through draft -> review -> published -> archived.

        Publishing needs a title and at least one active credit mapping.
        """
        activity = self.get_activity(activity_id)
        current = activity.publish_status

        if new_status not in STATUS_TRANSITIONS:
            raise ValidationFailure(f"Unknown publish status: {new_status}", field="publish_status")
        if new_status == current:
            raise ValidationFailure(f"Activity is already {current}", field="publish_status")
        if new_status not in STATUS_TRANSITIONS.get(current, ()):
            raise ValidationFailure(
                f"Activity cannot move from {current} to {new_status}", field="publish_status"
            )

        if new_status == "published":
            if not activity.title or not activity.title.strip():
                raise ValidationFailure(
                    "Activity must have a title to be published", field="title"
                )
            if not activity.active_mappings:
                raise ValidationFailure(
                    "Activity must have at least one credit mapping to be published",
                    field="credit_mappings",
                )

        try:
            activity.publish_status = new_status
            if new_status == "published":
                activity.published_at = utcnow()
            self.db.commit()
        except Exception as e:
            logger.error(f"Failed to move activity {activity_id} to {new_status}: {e}")
            self.db.rollback()
            raise

        logger.info(f"Activity {activity_id} moved from {current} to {new_status}")
        return activity
