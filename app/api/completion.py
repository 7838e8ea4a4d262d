from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.schemas.completion import (
    CertificateIssueResponse,
    CertificateResponse,
    CompletionCheckResult,
)
from app.services.certificate_service import CertificateService
from app.services.completion_rules import CompletionService

router = APIRouter(prefix="/api/completion", tags=["Completion"])


@router.get("/{cpd_record_id}", response_model=CompletionCheckResult)
async def check_completion(cpd_record_id: int, db: Session = Depends(get_db)):
    """Evaluate every completion rule attached to a CPD record"""
    service = CompletionService(db)
    result = service.evaluate(cpd_record_id)
    return CompletionCheckResult.model_validate(result, from_attributes=True)


@router.post("/{cpd_record_id}", response_model=CertificateIssueResponse)
async def complete_and_certify(cpd_record_id: int, db: Session = Depends(get_db)):
    """Issue a certificate if all rules pass (returns the existing one if issued)"""
    service = CertificateService(db)
    result = service.issue_certificate(cpd_record_id)

    check = result.check
    response = CertificateIssueResponse(
        cpd_record_id=check.cpd_record_id,
        all_passed=check.all_passed,
        eligible_for_certificate=check.eligible_for_certificate,
        rules=[r.__dict__ for r in check.rules],
        message=result.message,
        created=result.created,
        certificate=(
            CertificateResponse.model_validate(result.certificate)
            if result.certificate
            else None
        ),
    )

    if result.created:
        return JSONResponse(status_code=201, content=response.model_dump(mode="json"))
    return response
