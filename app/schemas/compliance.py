# app/schemas/compliance.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional


class ComplianceGapResponse(BaseModel):
    """Hours completed vs required for one credential holding"""

    model_config = ConfigDict(from_attributes=True)

    holding_id: Optional[int] = None
    credential_id: int
    credential_name: str
    is_primary: bool = False
    requirements_source: str = Field(
        "credential_defaults", description="rule_pack or credential_defaults"
    )
    hours_required: Optional[float] = None
    total_completed: float
    ethics_completed: float
    structured_completed: float
    total_needed: float = Field(..., ge=0)
    ethics_needed: float = Field(..., ge=0)
    structured_needed: float = Field(..., ge=0)
    progress_percent: int = Field(..., ge=0, le=100)
    days_until_deadline: Optional[int] = None
    compliant: bool
    urgency: str


class RankedActivity(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    type: str
    hours: float
    category: str
    provider: Optional[str] = None
    match_score: int


class GapRecommendation(BaseModel):
    """Ranked activities for one gap category of one credential"""

    model_config = ConfigDict(from_attributes=True)

    category: str  # ethics, structured, general
    hours_needed: float
    urgency: str  # critical, high, medium, low
    message: str
    credential_id: int
    credential_name: str
    suggested_activities: List[RankedActivity] = []


class ComplianceOverview(BaseModel):
    """Headline status for the primary credential"""

    model_config = ConfigDict(from_attributes=True)

    compliant: bool
    message: str
    credential_name: Optional[str] = None
    total_needed: float = 0.0
    ethics_needed: float = 0.0
    structured_needed: float = 0.0
    days_until_deadline: Optional[int] = None
    urgency: str = "low"


class ComplianceSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    per_credential: List[ComplianceGapResponse] = []
    recommendations: List[GapRecommendation] = []
    summary: ComplianceOverview
