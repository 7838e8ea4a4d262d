# app/services/recommendation_scorer.py
"""
Recommendation Scorer

Ranks published catalog activities against a holding's open gaps.

Score components (each counted once per activity):
    +10  a mapping is bound to the holding's credential
    +5   a mapping's country is the credential's region
    +2   a mapping uses the INTL wildcard
    +8   a mapping's category is the gap's target category
    +3   the activity carries an assessment

Positive scores are amplified as the renewal deadline approaches
(x1.5 under 30 days, x1.2 under 60, x1.1 under 90) and rounded.
Activities scoring 0 are dropped. Ordering is by score, then catalog order.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence
from app.core.utils import format_hours, round2, round_half_up
from app.models.activity import Activity, INTERNATIONAL
from app.models.credential import CredentialHolding
from app.services.compliance_gap import ComplianceGap, classify_urgency

CREDENTIAL_MATCH_POINTS = 10
REGION_MATCH_POINTS = 5
INTERNATIONAL_POINTS = 2
CATEGORY_MATCH_POINTS = 8
ASSESSMENT_POINTS = 3

# (days threshold, multiplier), checked in order
DEADLINE_MULTIPLIERS = [(30, 1.5), (60, 1.2), (90, 1.1)]

DEFAULT_LIMIT = 5

# Gap category -> mapping category it is matched against
GAP_TARGET_CATEGORIES = {
    "ethics": "ethics",
    "structured": "technical",
    "general": None,
}


@dataclass
class RankedActivity:
    id: int
    title: str
    type: str
    hours: float
    category: str
    match_score: int
    provider: Optional[str] = None


@dataclass
class GapRecommendation:
    category: str
    hours_needed: float
    urgency: str
    message: str
    credential_id: int
    credential_name: str
    suggested_activities: List[RankedActivity] = field(default_factory=list)


def deadline_multiplier(days_until_deadline: Optional[int]) -> float:
    if days_until_deadline is None:
        return 1.0
    for threshold, multiplier in DEADLINE_MULTIPLIERS:
        if days_until_deadline < threshold:
            return multiplier
    return 1.0


def score_activity(
    activity: Activity,
    holding: CredentialHolding,
    target_category: Optional[str] = None,
    days_until_deadline: Optional[int] = None,
) -> int:
    mappings = activity.active_mappings
    region = holding.credential.region

    score = 0
    if any(m.credential_id == holding.credential_id for m in mappings):
        score += CREDENTIAL_MATCH_POINTS
    if any(m.country == region for m in mappings):
        score += REGION_MATCH_POINTS
    if any(m.country == INTERNATIONAL for m in mappings):
        score += INTERNATIONAL_POINTS
    if target_category and any(m.credit_category == target_category for m in mappings):
        score += CATEGORY_MATCH_POINTS
    if activity.assessment_id is not None:
        score += ASSESSMENT_POINTS

    if score > 0:
        score = round_half_up(score * deadline_multiplier(days_until_deadline))
    return score


def rank_activities(
    activities: Sequence[Activity],
    holding: CredentialHolding,
    gap_category: str = "general",
    days_until_deadline: Optional[int] = None,
    limit: int = DEFAULT_LIMIT,
) -> List[RankedActivity]:
    """Top activities for one gap category, highest score first"""
    target = GAP_TARGET_CATEGORIES.get(gap_category)

    scored = []
    for activity in activities:
        score = score_activity(activity, holding, target, days_until_deadline)
        if score > 0:
            scored.append((score, activity))

    # sorted() is stable, so equal scores keep catalog order
    scored = sorted(scored, key=lambda pair: pair[0], reverse=True)

    return [
        RankedActivity(
            id=activity.id,
            title=activity.title,
            type=activity.type,
            hours=activity.hours,
            category=gap_category,
            provider=activity.provider,
            match_score=score,
        )
        for score, activity in scored[:limit]
    ]


def _gap_message(category: str, hours_needed: float, credential_name: str) -> str:
    hours = format_hours(hours_needed)
    plural = "" if hours_needed == 1 else "s"
    if category == "ethics":
        return f"You need {hours} more ethics hour{plural} to meet your {credential_name} requirement."
    if category == "structured":
        return f"You need {hours} more structured hour{plural} for your {credential_name} credential."
    return f"You need {hours} more general CPD hour{plural} to complete your {credential_name} cycle."


def build_recommendations(
    gap: ComplianceGap,
    holding: CredentialHolding,
    activities: Sequence[Activity],
    limit: int = DEFAULT_LIMIT,
) -> List[GapRecommendation]:
    """Ethics, structured and general recommendations for one holding's gap"""
    general_needed = max(0.0, gap.total_needed - gap.ethics_needed - gap.structured_needed)
    needed_by_category = [
        ("ethics", gap.ethics_needed),
        ("structured", gap.structured_needed),
        ("general", general_needed),
    ]

    recommendations = []
    for category, hours_needed in needed_by_category:
        if hours_needed <= 0:
            continue
        recommendations.append(
            GapRecommendation(
                category=category,
                hours_needed=round2(hours_needed),
                urgency=classify_urgency(hours_needed, gap.days_until_deadline),
                message=_gap_message(category, hours_needed, gap.credential_name),
                credential_id=gap.credential_id,
                credential_name=gap.credential_name,
                suggested_activities=rank_activities(
                    activities,
                    holding,
                    gap_category=category,
                    days_until_deadline=gap.days_until_deadline,
                    limit=limit,
                ),
            )
        )
    return recommendations
