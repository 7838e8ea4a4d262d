from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.schemas.compliance import ComplianceGapResponse, ComplianceSummaryResponse
from app.services.compliance_service import ComplianceService
from typing import List

router = APIRouter(prefix="/api/compliance", tags=["Compliance"])


@router.get("/{user_id}", response_model=ComplianceSummaryResponse)
async def get_compliance_summary(user_id: int, db: Session = Depends(get_db)):
    """Compliance gap per held credential plus recommended activities"""
    service = ComplianceService(db)
    summary = service.get_summary(user_id)
    return ComplianceSummaryResponse.model_validate(summary, from_attributes=True)


@router.get("/{user_id}/gaps", response_model=List[ComplianceGapResponse])
async def get_compliance_gaps(user_id: int, db: Session = Depends(get_db)):
    """Just the per-credential gaps, without recommendations"""
    service = ComplianceService(db)
    summary = service.get_summary(user_id)
    return [
        ComplianceGapResponse.model_validate(gap, from_attributes=True)
        for gap in summary.per_credential
    ]
