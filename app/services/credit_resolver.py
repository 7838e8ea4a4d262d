# app/services/credit_resolver.py
"""
Credit Resolver

Decides what a catalog activity is worth for each of a professional's
credential holdings. A mapping row survives for a holding when:

1. its country is the credential's region, or the INTL wildcard
2. it is not bound to a different credential
3. the holding's jurisdiction is not in its exclusions
4. its state/province inclusion list is empty or contains the jurisdiction

Unreadable exclusion/inclusion payloads count as "no restriction".
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
from sqlalchemy.orm import Session
from app.core.exceptions import NotFoundError
from app.core.utils import round2
from app.models.activity import Activity, CreditMapping, INTERNATIONAL
from app.models.credential import CredentialHolding
from app.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_CREDIT_UNIT = "hours"


@dataclass
class CategoryCredit:
    category: str
    amount: float
    structured: str
    validation_method: str


@dataclass
class CreditView:
    """What one activity is worth for one holding"""

    credential_id: int
    credential_name: str
    eligible: bool
    total_credits: float
    credit_unit: str = DEFAULT_CREDIT_UNIT
    categories: List[CategoryCredit] = field(default_factory=list)
    holding_id: Optional[int] = None
    jurisdiction: Optional[str] = None
    is_primary: bool = False


def mapping_applies(mapping: CreditMapping, holding: CredentialHolding) -> bool:
    """True when the mapping row grants credit to this holding"""
    region = holding.credential.region
    if mapping.country != region and mapping.country != INTERNATIONAL:
        return False

    if mapping.credential_id is not None and mapping.credential_id != holding.credential_id:
        return False

    if mapping.credit_amount is None or mapping.credit_amount <= 0:
        logger.warning(
            f"Credit mapping {mapping.id} grants a non-positive amount ({mapping.credit_amount}); ignoring"
        )
        return False

    jurisdiction = holding.jurisdiction
    if jurisdiction:
        exclusions = mapping.get_exclusions()
        if exclusions and jurisdiction in exclusions:
            return False

        included = mapping.get_state_province()
        if included and jurisdiction not in included:
            return False

    return True


def resolve_credits(
    mappings: Sequence[CreditMapping], holding: CredentialHolding
) -> CreditView:
    """Resolve eligibility and total credit of one activity for one holding"""
    surviving = [m for m in mappings if mapping_applies(m, holding)]

    total = sum(m.credit_amount for m in surviving)

    return CreditView(
        holding_id=holding.id,
        credential_id=holding.credential_id,
        credential_name=holding.credential.name,
        jurisdiction=holding.jurisdiction,
        is_primary=bool(holding.is_primary),
        eligible=len(surviving) > 0,
        total_credits=round2(total),
        credit_unit=surviving[0].credit_unit if surviving else DEFAULT_CREDIT_UNIT,
        categories=[
            CategoryCredit(
                category=m.credit_category,
                amount=round2(m.credit_amount),
                structured=m.structured_flag,
                validation_method=m.validation_method,
            )
            for m in surviving
        ],
    )


def resolve_credits_for_holdings(
    mappings: Sequence[CreditMapping], holdings: Sequence[CredentialHolding]
) -> List[CreditView]:
    """One view per holding; holdings are evaluated independently"""
    return [resolve_credits(mappings, holding) for holding in holdings]


class CreditResolverService:
    """Loads activities and holdings and runs the resolver over them"""

    def __init__(self, db: Session):
        self.db = db

    def get_published_activity(self, activity_id: int) -> Activity:
        activity = (
            self.db.query(Activity)
            .filter(
                Activity.id == activity_id,
                Activity.active == True,  # noqa: E712
                Activity.publish_status == "published",
            )
            .first()
        )
        if not activity:
            raise NotFoundError("Activity", activity_id)
        return activity

    def resolve_for_holding(self, activity_id: int, holding_id: int) -> CreditView:
        activity = self.get_published_activity(activity_id)

        holding = (
            self.db.query(CredentialHolding)
            .filter(CredentialHolding.id == holding_id)
            .first()
        )
        if not holding:
            raise NotFoundError("Credential holding", holding_id)

        return resolve_credits(activity.active_mappings, holding)

    def resolve_for_user(
        self, activity_id: int, user_id: int
    ) -> Tuple[Activity, List[CreditView]]:
        """Credit views for every holding of a professional"""
        activity = self.get_published_activity(activity_id)

        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User", user_id)

        views = resolve_credits_for_holdings(activity.active_mappings, user.holdings)
        logger.info(
            f"Resolved activity {activity_id} for user {user_id}: "
            f"{sum(1 for v in views if v.eligible)}/{len(views)} holdings eligible"
        )
        return activity, views
