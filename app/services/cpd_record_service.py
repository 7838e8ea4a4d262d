# app/services/cpd_record_service.py - Guarded edits of logged CPD records
from sqlalchemy.orm import Session
from app.core.exceptions import NotFoundError, ValidationFailure
from app.core.utils import exceeds_hours, format_hours, utcnow
from app.models.certificate import Certificate
from app.models.cpd_record import CPDRecord, CPDAllocation, CompletionRule, Evidence
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "title",
    "provider",
    "activity_type",
    "hours",
    "date",
    "status",
    "category",
    "learning_outcome",
    "notes",
}

# Editable columns that are NOT NULL in storage
REQUIRED_FIELDS = {"title", "activity_type", "hours", "date", "status"}


class CPDRecordService:
    """Edits and deletes logged activities, protecting platform-issued ones"""

    def __init__(self, db: Session):
        self.db = db

    def get_record(self, record_id: int) -> CPDRecord:
        record = self.db.query(CPDRecord).filter(CPDRecord.id == record_id).first()
        if not record:
            raise NotFoundError("CPD record", record_id)
        return record

    def _ensure_mutable(self, record: CPDRecord, action: str) -> None:
        if record.is_immutable:
            raise ValidationFailure(
                f"Platform-generated records cannot be {action}", field="source"
            )

    def update_record(self, record_id: int, changes: Dict[str, Any]) -> CPDRecord:
        record = self.get_record(record_id)
        self._ensure_mutable(record, "edited")

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationFailure(
                f"Fields cannot be edited: {', '.join(sorted(unknown))}", field=sorted(unknown)[0]
            )

        cleared = sorted(k for k in REQUIRED_FIELDS if k in changes and changes[k] is None)
        if cleared:
            raise ValidationFailure(f"{cleared[0]} cannot be empty", field=cleared[0])

        if "hours" in changes:
            allocated = sum(a.hours for a in record.allocations)
            if exceeds_hours(allocated, changes["hours"]):
                raise ValidationFailure(
                    f"Hours ({format_hours(changes['hours'], places=6)}) would fall below "
                    f"allocated hours ({format_hours(allocated, places=6)})",
                    field="hours",
                )

        try:
            for key, value in changes.items():
                setattr(record, key, value)
            record.updated_at = utcnow()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update CPD record {record_id}: {str(e)}")
            raise

        logger.info(f"CPD record updated: {record_id} ({', '.join(sorted(changes))})")
        return record

    def delete_record(self, record_id: int) -> bool:
        """
        Delete a record with its allocations and completion rules. Evidence
        is detached, not deleted. Records backing a certificate are kept.
        """
        record = self.get_record(record_id)
        self._ensure_mutable(record, "deleted")

        certificate_count = (
            self.db.query(Certificate)
            .filter(Certificate.cpd_record_id == record_id)
            .count()
        )
        if certificate_count:
            raise ValidationFailure(
                "Records with issued certificates cannot be deleted", field="certificates"
            )

        try:
            self.db.query(CPDAllocation).filter(
                CPDAllocation.cpd_record_id == record_id
            ).delete()
            self.db.query(CompletionRule).filter(
                CompletionRule.cpd_record_id == record_id
            ).delete()
            self.db.query(Evidence).filter(Evidence.cpd_record_id == record_id).update(
                {Evidence.cpd_record_id: None}
            )
            # Children were changed in bulk; reload them before the ORM delete
            self.db.expire(record, ["allocations", "completion_rules", "evidence"])
            self.db.delete(record)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete CPD record {record_id}: {str(e)}")
            raise

        logger.info(f"CPD record deleted: {record_id}")
        return True
