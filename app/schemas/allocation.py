# app/schemas/allocation.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional


class AllocationItem(BaseModel):
    """One requested split of a record's hours"""

    holding_id: int = Field(..., description="Credential holding receiving the hours")
    hours: float = Field(..., description="Hours attributed to the holding")


class AllocationSetRequest(BaseModel):
    """Replace-all request for a CPD record's allocations"""

    allocations: List[AllocationItem] = Field(default_factory=list, max_length=100)


class AllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cpd_record_id: int
    holding_id: int
    hours: float
    credential_name: Optional[str] = None


class AllocationSetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cpd_record_id: int
    allocations: List[AllocationResponse]
    total_allocated: float
    record_hours: float
    unallocated: float
