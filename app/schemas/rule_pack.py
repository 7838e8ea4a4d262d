# app/schemas/rule_pack.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import date, datetime
from typing import Any, Dict, Optional


class RulePackCreate(BaseModel):
    """Schema for creating a new rule pack version"""

    credential_id: int
    name: str = Field(..., min_length=1, max_length=200)
    rules: Dict[str, Any] = Field(..., description="Structured rules payload")
    effective_from: date
    effective_to: Optional[date] = None
    changelog: Optional[str] = None


class RulePackResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    credential_id: int
    version: int
    name: str
    rules: Dict[str, Any]
    effective_from: date
    effective_to: Optional[date] = None
    changelog: Optional[str] = None
    created_at: Optional[datetime] = None


class ResolvedRules(BaseModel):
    """Rules in force for a credential on a date"""

    model_config = ConfigDict(from_attributes=True)

    credential_id: int
    credential_name: str
    date: date
    source: str  # rule_pack or credential_defaults
    rules: Dict[str, Any]
    version: Optional[int] = None
    pack_id: Optional[int] = None
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    message: Optional[str] = None
