# app/schemas/activity.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Literal, Optional

ActivityType = Literal["webinar", "video", "article", "assessment", "bundle"]


class CreditMappingCreate(BaseModel):
    """One credit row: what the activity grants and where"""

    country: str = Field(..., min_length=2, max_length=10, description="Region code or INTL")
    credit_category: str = Field(..., min_length=1, max_length=50)
    credit_amount: float = Field(..., gt=0, le=100)
    credit_unit: str = Field("hours", max_length=20)
    credential_id: Optional[int] = None
    state_province: Optional[List[str]] = None
    exclusions: Optional[List[str]] = None
    structured_flag: str = Field("true", max_length=20)
    validation_method: str = Field("attendance", max_length=30)


class CreditMappingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    activity_id: int
    country: str
    credit_category: str
    credit_amount: float
    credit_unit: str
    credential_id: Optional[int] = None
    state_province: Optional[List[str]] = None
    exclusions: Optional[List[str]] = None
    structured_flag: str
    validation_method: str
    active: bool


class ActivityCreate(BaseModel):
    """Schema for adding a draft activity to the catalog"""

    type: ActivityType
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = Field(None, max_length=5000)
    provider: Optional[str] = Field(None, max_length=200)
    duration_minutes: Optional[int] = Field(None, gt=0, le=10000)
    tags: Optional[List[str]] = None
    jurisdiction_scope: Optional[List[str]] = None
    assessment_id: Optional[int] = None
    credit_mappings: List[CreditMappingCreate] = []


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    title: str
    description: Optional[str] = None
    provider: Optional[str] = None
    duration_minutes: Optional[int] = None
    publish_status: str
    tags: Optional[List[str]] = None
    jurisdiction_scope: Optional[List[str]] = None
    assessment_id: Optional[int] = None
    active: bool
    created_at: Optional[datetime] = None
    credit_mappings: List[CreditMappingResponse] = []


class AssessmentAttemptCreate(BaseModel):
    """A graded attempt; score is a percentage"""

    user_id: int
    score: float = Field(..., ge=0, le=100)


class AssessmentAttemptResponse(BaseModel):
    attempt_id: int
    assessment_id: int
    user_id: int
    score: float
    passed: bool
    attempts_used: int
    attempts_remaining: int
    cpd_record_id: Optional[int] = None
    certificate_code: Optional[str] = None
    verification_url: Optional[str] = None
