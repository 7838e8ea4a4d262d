from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.schemas.completion import CertificateResponse
from app.services.certificate_service import CertificateService
from typing import Any, Dict

router = APIRouter(prefix="/api/certificates", tags=["Certificates"])


@router.get("/verify/{certificate_code}")
async def verify_certificate(
    certificate_code: str, db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Public verification of a certificate code"""
    certificate = CertificateService(db).get_by_code(certificate_code)
    return {
        "valid": certificate.is_active,
        "status": certificate.status,
        "certificate_code": certificate.certificate_code,
        "title": certificate.title,
        "credential_name": certificate.credential_name,
        "hours": certificate.hours,
        "completed_date": certificate.completed_date.isoformat(),
    }


@router.get("/{certificate_id}", response_model=CertificateResponse)
async def get_certificate(certificate_id: int, db: Session = Depends(get_db)):
    certificate = CertificateService(db).get_certificate(certificate_id)
    return CertificateResponse.model_validate(certificate)


@router.post("/{certificate_id}/revoke", response_model=CertificateResponse)
async def revoke_certificate(certificate_id: int, db: Session = Depends(get_db)):
    """Revoke a certificate; it stays on record for audit"""
    certificate = CertificateService(db).revoke_certificate(certificate_id)
    return CertificateResponse.model_validate(certificate)
