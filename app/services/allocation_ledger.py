# app/services/allocation_ledger.py
"""
Allocation Ledger

Splits the hours of one CPD record across the professional's credential
holdings. Allocations are replaced as a whole: the delete of the old set
and the insert of the new one commit together or not at all.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence
from sqlalchemy.orm import Session
from app.core.exceptions import EngineError, NotFoundError, ValidationFailure
from app.core.utils import exceeds_hours, format_hours, round2
from app.models.cpd_record import CPDRecord, CPDAllocation
from app.models.credential import CredentialHolding

logger = logging.getLogger(__name__)


@dataclass
class AllocationRequest:
    holding_id: int
    hours: float


@dataclass
class AllocationResult:
    cpd_record_id: int
    total_allocated: float
    record_hours: float
    unallocated: float
    allocations: List[CPDAllocation] = field(default_factory=list)


def validate_allocations(record_hours: float, items: Sequence[AllocationRequest]) -> float:
    """
    Check a requested allocation set against a record's hours.

    Returns the total allocated. Raises ValidationFailure for non-positive
    hours, a holding listed twice, or a total above the record's hours.
    """
    seen = set()
    total = 0.0
    for item in items:
        if item.hours is None or item.hours <= 0:
            raise ValidationFailure("Allocated hours must be positive", field="hours")
        if item.holding_id in seen:
            raise ValidationFailure(
                "Duplicate credential allocations not allowed", field="allocations"
            )
        seen.add(item.holding_id)
        total += item.hours

    if exceeds_hours(total, record_hours):
        raise ValidationFailure(
            f"Total allocated hours ({format_hours(total, places=6)}) exceeds "
            f"record hours ({format_hours(record_hours, places=6)})",
            field="allocations",
        )
    return round2(total)


class AllocationLedger:
    def __init__(self, db: Session):
        self.db = db

    def set_allocations(
        self, cpd_record_id: int, items: Iterable[AllocationRequest]
    ) -> AllocationResult:
        """
        Replace all allocations of a record.

        The record row is locked for the duration so concurrent replaces on
        the same record run one after the other (last writer wins).
        """
        items = list(items)
        try:
            record = (
                self.db.query(CPDRecord)
                .filter(CPDRecord.id == cpd_record_id)
                .with_for_update()
                .first()
            )
            if not record:
                raise NotFoundError("CPD record", cpd_record_id)

            total = validate_allocations(record.hours, items)

            holding_ids = [item.holding_id for item in items]
            if holding_ids:
                owned = (
                    self.db.query(CredentialHolding.id)
                    .filter(
                        CredentialHolding.id.in_(holding_ids),
                        CredentialHolding.user_id == record.user_id,
                    )
                    .all()
                )
                owned_ids = {row[0] for row in owned}
                missing = [h for h in holding_ids if h not in owned_ids]
                if missing:
                    raise NotFoundError("Credential holding", missing[0])

            self.db.query(CPDAllocation).filter(
                CPDAllocation.cpd_record_id == cpd_record_id
            ).delete()

            created = []
            for item in items:
                allocation = CPDAllocation(
                    cpd_record_id=cpd_record_id,
                    holding_id=item.holding_id,
                    hours=item.hours,
                )
                self.db.add(allocation)
                created.append(allocation)

            self.db.commit()

        except EngineError:
            self.db.rollback()
            raise
        except Exception as e:
            logger.error(f"Failed to set allocations for CPD record {cpd_record_id}: {e}")
            self.db.rollback()
            raise

        self.db.expire(record, ["allocations"])
        logger.info(
            f"Set {len(created)} allocation(s) on CPD record {cpd_record_id}: "
            f"{format_hours(total)} of {format_hours(record.hours)} hours"
        )

        return AllocationResult(
            cpd_record_id=cpd_record_id,
            total_allocated=total,
            record_hours=round2(record.hours),
            unallocated=max(0.0, round2(record.hours - total)),
            allocations=created,
        )

    def list_allocations(
        self, cpd_record_id: Optional[int] = None, holding_id: Optional[int] = None
    ) -> List[CPDAllocation]:
        if cpd_record_id is None and holding_id is None:
            raise ValidationFailure(
                "cpd_record_id or holding_id is required", field="cpd_record_id"
            )
        query = self.db.query(CPDAllocation)
        if cpd_record_id is not None:
            query = query.filter(CPDAllocation.cpd_record_id == cpd_record_id)
        if holding_id is not None:
            query = query.filter(CPDAllocation.holding_id == holding_id)
        return query.order_by(CPDAllocation.id).all()
