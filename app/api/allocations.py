from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.models.cpd_record import CPDAllocation
from app.schemas.allocation import (
    AllocationResponse,
    AllocationSetRequest,
    AllocationSetResponse,
)
from app.services.allocation_ledger import AllocationLedger, AllocationRequest
from typing import List, Optional

router = APIRouter(prefix="/api/allocations", tags=["Allocations"])


def _allocation_response(allocation: CPDAllocation) -> AllocationResponse:
    holding = allocation.holding
    return AllocationResponse(
        id=allocation.id,
        cpd_record_id=allocation.cpd_record_id,
        holding_id=allocation.holding_id,
        hours=round(allocation.hours, 2),
        credential_name=holding.credential.name if holding else None,
    )


@router.get("/", response_model=List[AllocationResponse])
async def list_allocations(
    cpd_record_id: Optional[int] = Query(None),
    holding_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    """Allocations of a CPD record or of a credential holding"""
    ledger = AllocationLedger(db)
    allocations = ledger.list_allocations(cpd_record_id=cpd_record_id, holding_id=holding_id)
    return [_allocation_response(a) for a in allocations]


@router.put("/{cpd_record_id}", response_model=AllocationSetResponse)
async def set_allocations(
    cpd_record_id: int,
    request: AllocationSetRequest,
    db: Session = Depends(get_db),
):
    """Replace all allocations of a CPD record (sum must not exceed its hours)"""
    ledger = AllocationLedger(db)
    result = ledger.set_allocations(
        cpd_record_id,
        [AllocationRequest(holding_id=a.holding_id, hours=a.hours) for a in request.allocations],
    )

    return AllocationSetResponse(
        cpd_record_id=result.cpd_record_id,
        allocations=[_allocation_response(a) for a in result.allocations],
        total_allocated=result.total_allocated,
        record_hours=result.record_hours,
        unallocated=result.unallocated,
    )
