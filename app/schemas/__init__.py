# app/schemas/__init__.py
"""
Pydantic schemas for FastAPI request/response validation

This module contains all the Pydantic models used for:
- Request validation
- Response serialization
- API documentation
"""

# Credit resolution schemas
from .credit import CategoryCredit, CreditView, ActivityCreditsResponse

# Activity catalog schemas
from .activity import (
    CreditMappingCreate,
    CreditMappingResponse,
    ActivityCreate,
    ActivityResponse,
    AssessmentAttemptCreate,
    AssessmentAttemptResponse,
)

# Compliance schemas
from .compliance import (
    ComplianceGapResponse,
    RankedActivity,
    GapRecommendation,
    ComplianceOverview,
    ComplianceSummaryResponse,
)

# Completion schemas
from .completion import (
    AssessmentPassConfig,
    EvidenceUploadConfig,
    WatchTimeConfig,
    AttendanceConfig,
    CompletionRuleConfig,
    RuleEvaluation,
    CompletionCheckResult,
    CertificateResponse,
    CertificateIssueResponse,
)

# Allocation schemas
from .allocation import (
    AllocationItem,
    AllocationSetRequest,
    AllocationResponse,
    AllocationSetResponse,
)

# Rule pack schemas
from .rule_pack import RulePackCreate, RulePackResponse, ResolvedRules

# CPD record schemas
from .cpd_record import CPDRecordUpdate, CPDRecordResponse

__all__ = [
    # Credit
    "CategoryCredit",
    "CreditView",
    "ActivityCreditsResponse",
    # Activity catalog
    "CreditMappingCreate",
    "CreditMappingResponse",
    "ActivityCreate",
    "ActivityResponse",
    "AssessmentAttemptCreate",
    "AssessmentAttemptResponse",
    # Compliance
    "ComplianceGapResponse",
    "RankedActivity",
    "GapRecommendation",
    "ComplianceOverview",
    "ComplianceSummaryResponse",
    # Completion
    "AssessmentPassConfig",
    "EvidenceUploadConfig",
    "WatchTimeConfig",
    "AttendanceConfig",
    "CompletionRuleConfig",
    "RuleEvaluation",
    "CompletionCheckResult",
    "CertificateResponse",
    "CertificateIssueResponse",
    # Allocation
    "AllocationItem",
    "AllocationSetRequest",
    "AllocationResponse",
    "AllocationSetResponse",
    # Rule pack
    "RulePackCreate",
    "RulePackResponse",
    "ResolvedRules",
    # CPD record
    "CPDRecordUpdate",
    "CPDRecordResponse",
]
