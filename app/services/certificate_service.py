# app/services/certificate_service.py
"""
Certificate issuance for CPD records whose completion rules all pass.

Issuance is idempotent: while an active certificate exists for a record it
is returned instead of creating another. Certificates are audit evidence;
they can be revoked but never deleted.
"""

import logging
import secrets
import string
from dataclasses import dataclass
from typing import Optional
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import EngineError, NotFoundError, ValidationFailure
from app.core.jsonfields import dump_json
from app.core.utils import utcnow
from app.models.certificate import Certificate
from app.models.credential import CredentialHolding
from app.services.completion_rules import CompletionCheckResult, CompletionService

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_lowercase + string.digits
CODE_SUFFIX_LENGTH = 8


def generate_certificate_code(year: Optional[int] = None) -> str:
    """Codes look like CERT-2026-k3x9a0pq"""
    if year is None:
        year = utcnow().year
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH))
    return f"CERT-{year}-{suffix}"


@dataclass
class IssueResult:
    check: CompletionCheckResult
    certificate: Optional[Certificate]
    created: bool
    message: str


class CertificateService:
    def __init__(self, db: Session):
        self.db = db
        self.completion = CompletionService(db)

    def find_active_certificate(self, cpd_record_id: int) -> Optional[Certificate]:
        return (
            self.db.query(Certificate)
            .filter(
                Certificate.cpd_record_id == cpd_record_id,
                Certificate.status == "active",
            )
            .order_by(Certificate.id)
            .first()
        )

    def issue_certificate(self, cpd_record_id: int) -> IssueResult:
        """
        Evaluate completion rules and issue a certificate if they all pass.

        No partial certificates: a failing evaluation returns the check
        result with no certificate.
        """
        try:
            # Lock so two concurrent issues for the same record can't both create
            record = self.completion.get_record(cpd_record_id, lock=True)
            check = self.completion.evaluator.evaluate(record)

            if not check.all_passed:
                self.db.rollback()
                return IssueResult(
                    check=check,
                    certificate=None,
                    created=False,
                    message="Not all completion rules are met. Certificate not generated.",
                )

            existing = self.find_active_certificate(cpd_record_id)
            if existing:
                self.db.rollback()
                return IssueResult(
                    check=check,
                    certificate=existing,
                    created=False,
                    message="Certificate already exists for this activity.",
                )

            primary = (
                self.db.query(CredentialHolding)
                .filter(
                    CredentialHolding.user_id == record.user_id,
                    CredentialHolding.is_primary == True,  # noqa: E712
                )
                .first()
            )

            code = generate_certificate_code()
            certificate = Certificate(
                user_id=record.user_id,
                cpd_record_id=record.id,
                certificate_code=code,
                title=record.title,
                credential_name=primary.credential.name if primary else None,
                hours=record.hours,
                category=record.category,
                activity_type=record.activity_type,
                provider=record.provider,
                completed_date=record.date,
                verification_url=f"{settings.base_url.rstrip('/')}/api/certificates/verify/{code}",
                status="active",
                certificate_metadata=dump_json(
                    {
                        "completionRules": [
                            {"name": r.rule_name, "type": r.rule_type, "passed": r.passed}
                            for r in check.rules
                        ]
                    }
                ),
                issued_at=utcnow(),
            )
            self.db.add(certificate)
            self.db.commit()
            self.db.refresh(certificate)

        except EngineError:
            self.db.rollback()
            raise
        except Exception as e:
            logger.error(f"Failed to issue certificate for CPD record {cpd_record_id}: {e}")
            self.db.rollback()
            raise

        logger.info(f"Issued certificate {certificate.certificate_code} for CPD record {cpd_record_id}")
        return IssueResult(
            check=check,
            certificate=certificate,
            created=True,
            message="All rules passed. Certificate generated.",
        )

    def get_certificate(self, certificate_id: int) -> Certificate:
        certificate = (
            self.db.query(Certificate).filter(Certificate.id == certificate_id).first()
        )
        if not certificate:
            raise NotFoundError("Certificate", certificate_id)
        return certificate

    def get_by_code(self, certificate_code: str) -> Certificate:
        certificate = (
            self.db.query(Certificate)
            .filter(Certificate.certificate_code == certificate_code)
            .first()
        )
        if not certificate:
            raise NotFoundError("Certificate", certificate_code)
        return certificate

    def revoke_certificate(self, certificate_id: int) -> Certificate:
        """Flip status to revoked; the row itself is kept"""
        certificate = self.get_certificate(certificate_id)
        if certificate.status == "revoked":
            raise ValidationFailure("Certificate is already revoked", field="status")

        try:
            certificate.status = "revoked"
            certificate.revoked_at = utcnow()
            self.db.commit()
        except Exception as e:
            logger.error(f"Failed to revoke certificate {certificate_id}: {e}")
            self.db.rollback()
            raise

        logger.info(f"Revoked certificate {certificate.certificate_code}")
        return certificate
