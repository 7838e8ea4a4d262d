# app/schemas/credit.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional


class CategoryCredit(BaseModel):
    """Credit granted by one surviving mapping row"""

    model_config = ConfigDict(from_attributes=True)

    category: str
    amount: float
    structured: str
    validation_method: str


class CreditView(BaseModel):
    """What an activity is worth for one credential holding"""

    model_config = ConfigDict(from_attributes=True)

    holding_id: Optional[int] = None
    credential_id: int
    credential_name: str
    jurisdiction: Optional[str] = None
    is_primary: bool = False
    eligible: bool
    total_credits: float = Field(..., ge=0)
    credit_unit: str = "hours"
    categories: List[CategoryCredit] = []


class ActivityCreditsResponse(BaseModel):
    """Per-holding credit views for one activity"""

    activity_id: int
    title: str
    credit_views: List[CreditView]
    message: Optional[str] = None
