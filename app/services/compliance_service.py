# app/services/compliance_service.py
"""
Compliance summary for a professional: one gap per held credential plus
ranked activity recommendations for every open gap.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session, selectinload
from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.core.utils import format_hours, utcnow
from app.models.activity import Activity
from app.models.cpd_record import CPDRecord, CPDAllocation
from app.models.user import User
from app.services.compliance_gap import ComplianceGap, compute_gap
from app.services.recommendation_scorer import GapRecommendation, build_recommendations
from app.services.rule_pack_service import RulePackService

logger = logging.getLogger(__name__)

NO_CREDENTIAL_MESSAGE = (
    "No credential configured. Complete onboarding to get recommendations."
)


@dataclass
class ComplianceOverview:
    compliant: bool
    message: str
    credential_name: Optional[str] = None
    total_needed: float = 0.0
    ethics_needed: float = 0.0
    structured_needed: float = 0.0
    days_until_deadline: Optional[int] = None
    urgency: str = "low"


@dataclass
class ComplianceSummary:
    user_id: int
    summary: ComplianceOverview
    per_credential: List[ComplianceGap] = field(default_factory=list)
    recommendations: List[GapRecommendation] = field(default_factory=list)


def overview_for(gap: ComplianceGap) -> ComplianceOverview:
    """Headline message for the primary credential's gap"""
    days = gap.days_until_deadline
    if gap.compliant:
        message = (
            f"You have met all {gap.credential_name} CPD requirements for this cycle. "
            "Keep up the good work!"
        )
    elif days is not None and days < 30:
        message = (
            f"Urgent: Your {gap.credential_name} deadline is in {days} days. "
            f"You still need {format_hours(gap.total_needed)} hours to be compliant."
        )
    else:
        message = (
            f"You need {format_hours(gap.total_needed)} more hours total to meet "
            f"your {gap.credential_name} requirements."
        )

    return ComplianceOverview(
        compliant=gap.compliant,
        message=message,
        credential_name=gap.credential_name,
        total_needed=gap.total_needed,
        ethics_needed=gap.ethics_needed,
        structured_needed=gap.structured_needed,
        days_until_deadline=days,
        urgency=gap.urgency,
    )


class ComplianceService:
    def __init__(self, db: Session, now: Optional[datetime] = None):
        self.db = db
        self.now = now
        self.rule_packs = RulePackService(db)

    def load_catalog(self) -> List[Activity]:
        """Published activities in catalog order (oldest first, then id)"""
        return (
            self.db.query(Activity)
            .options(selectinload(Activity.credit_mappings))
            .filter(
                Activity.active == True,  # noqa: E712
                Activity.publish_status == "published",
            )
            .order_by(Activity.created_at.asc(), Activity.id.asc())
            .limit(settings.recommendation_catalog_limit)
            .all()
        )

    def get_summary(self, user_id: int) -> ComplianceSummary:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User", user_id)

        holdings = list(user.holdings)
        if not holdings:
            return ComplianceSummary(
                user_id=user_id,
                summary=ComplianceOverview(compliant=False, message=NO_CREDENTIAL_MESSAGE),
            )

        now = self.now or utcnow()

        records = (
            self.db.query(CPDRecord)
            .filter(CPDRecord.user_id == user_id, CPDRecord.status == "completed")
            .all()
        )
        record_ids = [r.id for r in records]
        allocations = []
        if record_ids:
            allocations = (
                self.db.query(CPDAllocation)
                .filter(CPDAllocation.cpd_record_id.in_(record_ids))
                .all()
            )

        catalog = self.load_catalog()

        gaps = []
        recommendations = []
        for holding in holdings:
            requirements = self.rule_packs.requirements_for(holding.credential, now.date())
            gap = compute_gap(
                holding, records, allocations=allocations, requirements=requirements, now=now
            )
            gaps.append(gap)
            recommendations.extend(
                build_recommendations(
                    gap, holding, catalog, limit=settings.recommendation_limit
                )
            )

        primary = user.primary_holding
        primary_gap = next((g for g in gaps if g.holding_id == primary.id), gaps[0])

        logger.info(
            f"Compliance summary for user {user_id}: {len(gaps)} credential(s), "
            f"{sum(1 for g in gaps if g.compliant)} compliant, "
            f"{len(recommendations)} recommendation group(s)"
        )

        return ComplianceSummary(
            user_id=user_id,
            summary=overview_for(primary_gap),
            per_credential=gaps,
            recommendations=recommendations,
        )
