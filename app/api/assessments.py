from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.schemas.activity import AssessmentAttemptCreate, AssessmentAttemptResponse
from app.services.assessment_service import AssessmentService

router = APIRouter(prefix="/api/assessments", tags=["Assessments"])


@router.post(
    "/{assessment_id}/attempts", response_model=AssessmentAttemptResponse, status_code=201
)
async def record_attempt(
    assessment_id: int, request: AssessmentAttemptCreate, db: Session = Depends(get_db)
):
    """
    Record a graded attempt. A pass on an assessment worth hours logs a
    platform CPD record and returns its certificate.
    """
    result = AssessmentService(db).record_attempt(
        assessment_id, request.user_id, request.score
    )
    certificate = result.certificate

    return AssessmentAttemptResponse(
        attempt_id=result.attempt.id,
        assessment_id=assessment_id,
        user_id=request.user_id,
        score=result.attempt.score,
        passed=result.attempt.passed,
        attempts_used=result.attempts_used,
        attempts_remaining=result.attempts_remaining,
        cpd_record_id=result.cpd_record.id if result.cpd_record else None,
        certificate_code=certificate.certificate_code if certificate else None,
        verification_url=certificate.verification_url if certificate else None,
    )
