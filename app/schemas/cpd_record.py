# app/schemas/cpd_record.py
from pydantic import BaseModel, Field, ConfigDict, model_validator
from datetime import datetime
from typing import Literal, Optional

RecordStatus = Literal["completed", "in_progress", "planned"]


class CPDRecordUpdate(BaseModel):
    """Schema for editing a logged activity (at least one field)"""

    title: Optional[str] = Field(None, min_length=1, max_length=300)
    provider: Optional[str] = Field(None, max_length=200)
    activity_type: Optional[str] = Field(None, max_length=50)
    hours: Optional[float] = Field(None, gt=0, le=100)
    date: Optional[datetime] = None
    status: Optional[RecordStatus] = None
    category: Optional[str] = Field(None, max_length=50)
    learning_outcome: Optional[str] = Field(None, max_length=2000)
    notes: Optional[str] = Field(None, max_length=5000)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class CPDRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    provider: Optional[str] = None
    activity_type: str
    hours: float
    date: datetime
    status: str
    category: Optional[str] = None
    source: str
    evidence_strength: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
