# app/schemas/completion.py
"""
Completion rule configuration and evaluation schemas.

Each rule type has its own config model; the stored JSON is validated
against the model selected by the rule's type (a tagged union). Legacy
camelCase keys from older records are accepted as aliases.
"""

from pydantic import BaseModel, Field, ConfigDict, AliasChoices
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

ASSESSMENT_PASS = "assessment_pass"
EVIDENCE_UPLOAD = "evidence_upload"
WATCH_TIME = "watch_time"
ATTENDANCE = "attendance"

RULE_TYPES = [ASSESSMENT_PASS, EVIDENCE_UPLOAD, WATCH_TIME, ATTENDANCE]


class AssessmentPassConfig(BaseModel):
    rule_type: Literal["assessment_pass"] = ASSESSMENT_PASS
    assessment_id: int = Field(
        ...,
        validation_alias=AliasChoices("assessment_id", "assessmentId", "quiz_id", "quizId"),
    )
    min_score: float = Field(
        0, ge=0, le=100, validation_alias=AliasChoices("min_score", "minScore")
    )


class EvidenceUploadConfig(BaseModel):
    rule_type: Literal["evidence_upload"] = EVIDENCE_UPLOAD
    min_files: int = Field(1, ge=0, validation_alias=AliasChoices("min_files", "minFiles"))
    required_types: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("required_types", "requiredTypes"),
    )


class WatchTimeConfig(BaseModel):
    rule_type: Literal["watch_time"] = WATCH_TIME
    min_watch_percent: float = Field(
        ...,
        ge=0,
        le=100,
        validation_alias=AliasChoices("min_watch_percent", "minWatchPercent"),
    )


class AttendanceConfig(BaseModel):
    rule_type: Literal["attendance"] = ATTENDANCE
    confirmation_required: bool = Field(
        False,
        validation_alias=AliasChoices("confirmation_required", "confirmationRequired"),
    )


CompletionRuleConfig = Annotated[
    Union[AssessmentPassConfig, EvidenceUploadConfig, WatchTimeConfig, AttendanceConfig],
    Field(discriminator="rule_type"),
]


class RuleEvaluation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rule_id: int
    rule_name: str
    rule_type: str
    passed: bool
    detail: str


class CompletionCheckResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cpd_record_id: int
    all_passed: bool
    rules: List[RuleEvaluation] = []
    eligible_for_certificate: bool


class CertificateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    certificate_code: str
    cpd_record_id: int
    title: str
    credential_name: Optional[str] = None
    hours: float
    category: Optional[str] = None
    completed_date: datetime
    verification_url: Optional[str] = None
    status: str
    issued_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None


class CertificateIssueResponse(CompletionCheckResult):
    """Evaluation result plus the certificate, when one exists"""

    message: str
    created: bool = False
    certificate: Optional[CertificateResponse] = None
