from .user import User
from .credential import Credential, CredentialHolding, RulePack
from .activity import Activity, CreditMapping, Assessment, AssessmentAttempt
from .cpd_record import CPDRecord, Evidence, CPDAllocation, CompletionRule
from .certificate import Certificate


__all__ = [
    "User",
    "Credential",
    "CredentialHolding",
    "RulePack",
    "Activity",
    "CreditMapping",
    "Assessment",
    "AssessmentAttempt",
    "CPDRecord",
    "Evidence",
    "CPDAllocation",
    "CompletionRule",
    "Certificate",
]
