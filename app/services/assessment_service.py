# app/services/assessment_service.py
"""
Assessment attempts.

A passing attempt on an assessment worth hours logs a platform-generated
CPD record (immutable audit evidence) and issues its certificate.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import EngineError, NotFoundError, ValidationFailure
from app.core.utils import utcnow
from app.models.activity import Assessment, AssessmentAttempt
from app.models.certificate import Certificate
from app.models.cpd_record import IMMUTABLE_SOURCE, CPDRecord
from app.models.user import User
from app.services.certificate_service import CertificateService

logger = logging.getLogger(__name__)


@dataclass
class AttemptResult:
    attempt: AssessmentAttempt
    attempts_used: int
    attempts_remaining: int
    cpd_record: Optional[CPDRecord] = None
    certificate: Optional[Certificate] = None


class AssessmentService:
    def __init__(self, db: Session):
        self.db = db

    def get_assessment(self, assessment_id: int) -> Assessment:
        assessment = (
            self.db.query(Assessment)
            .filter(Assessment.id == assessment_id, Assessment.active == True)  # noqa: E712
            .first()
        )
        if not assessment:
            raise NotFoundError("Assessment", assessment_id)
        return assessment

    def record_attempt(self, assessment_id: int, user_id: int, score: float) -> AttemptResult:
        """
        Store a graded attempt.

        Raises:
            NotFoundError: assessment or user does not exist
            ValidationFailure: score out of range or no attempts left
        """
        if score is None or score < 0 or score > 100:
            raise ValidationFailure("Score must be between 0 and 100", field="score")

        assessment = self.get_assessment(assessment_id)
        if not self.db.query(User.id).filter(User.id == user_id).first():
            raise NotFoundError("User", user_id)

        previous = (
            self.db.query(AssessmentAttempt)
            .filter(
                AssessmentAttempt.user_id == user_id,
                AssessmentAttempt.assessment_id == assessment_id,
            )
            .count()
        )
        if previous >= assessment.max_attempts:
            raise ValidationFailure(
                f"Maximum attempts reached ({previous} of {assessment.max_attempts})",
                field="attempts",
            )

        passed = score >= assessment.pass_mark
        record = None

        try:
            attempt = AssessmentAttempt(
                user_id=user_id,
                assessment_id=assessment_id,
                score=score,
                passed=passed,
                created_at=utcnow(),
            )
            self.db.add(attempt)

            if passed and assessment.hours > 0:
                now = utcnow()
                record = CPDRecord(
                    user_id=user_id,
                    title=f"Assessment: {assessment.title}",
                    provider=settings.platform_provider,
                    activity_type=assessment.activity_type or "structured",
                    hours=assessment.hours,
                    date=now,
                    status="completed",
                    category=assessment.category or "general",
                    source=IMMUTABLE_SOURCE,
                    evidence_strength="provider_verified",
                    external_id=f"assessment:{assessment_id}",
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(record)

            self.db.commit()
            self.db.refresh(attempt)

        except EngineError:
            self.db.rollback()
            raise
        except Exception as e:
            logger.error(f"Failed to record attempt on assessment {assessment_id}: {e}")
            self.db.rollback()
            raise

        logger.info(
            f"User {user_id} scored {score} on assessment {assessment_id} "
            f"({'passed' if passed else 'failed'}, attempt {previous + 1} of {assessment.max_attempts})"
        )

        certificate = None
        if record is not None:
            # Platform records carry no completion rules, so issuance always succeeds
            certificate = CertificateService(self.db).issue_certificate(record.id).certificate

        return AttemptResult(
            attempt=attempt,
            attempts_used=previous + 1,
            attempts_remaining=max(0, assessment.max_attempts - previous - 1),
            cpd_record=record,
            certificate=certificate,
        )
