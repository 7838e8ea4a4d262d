"""
Allocation ledger: replace-all splits of a record's hours across holdings.
"""
import pytest

from factories import (
    allocation_items,
    make_credential,
    make_holding,
    make_record,
    make_user,
)
from app.core.exceptions import NotFoundError, ValidationFailure
from app.models import CPDAllocation
from app.services.allocation_ledger import (
    AllocationLedger,
    AllocationRequest,
    validate_allocations,
)


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def holding_x(db, user):
    return make_holding(db, user, make_credential(db, name="CPA"), is_primary=True)


@pytest.fixture
def holding_y(db, user):
    return make_holding(db, user, make_credential(db, name="CFP"))


@pytest.fixture
def record(db, user):
    return make_record(db, user, hours=3)


def _stored(db, record):
    rows = (
        db.query(CPDAllocation)
        .filter(CPDAllocation.cpd_record_id == record.id)
        .order_by(CPDAllocation.holding_id)
        .all()
    )
    return [(a.holding_id, a.hours) for a in rows]


class TestValidateAllocations:
    def test_returns_total(self):
        items = [AllocationRequest(1, 2), AllocationRequest(2, 1)]
        assert validate_allocations(3, items) == 3

    def test_exact_float_sum_fits_record_hours(self):
        items = [AllocationRequest(1, 1.1), AllocationRequest(2, 2.2)]
        assert validate_allocations(3.3, items) == 3.3

    def test_sum_over_by_less_than_a_cent_is_rejected(self):
        items = [AllocationRequest(1, 2.002), AllocationRequest(2, 1.002)]

        with pytest.raises(ValidationFailure) as exc_info:
            validate_allocations(3, items)

        assert exc_info.value.field == "allocations"
        assert exc_info.value.message == (
            "Total allocated hours (3.004) exceeds record hours (3)"
        )

    def test_empty_set_is_valid(self):
        assert validate_allocations(3, []) == 0

    @pytest.mark.parametrize(
        "items, field",
        [
            ([AllocationRequest(1, 0)], "hours"),
            ([AllocationRequest(1, -1)], "hours"),
            ([AllocationRequest(1, 1), AllocationRequest(1, 1)], "allocations"),
            ([AllocationRequest(1, 2), AllocationRequest(2, 1.5)], "allocations"),
        ],
    )
    def test_rejections_name_the_field(self, items, field):
        with pytest.raises(ValidationFailure) as exc_info:
            validate_allocations(3, items)
        assert exc_info.value.field == field


class TestSetAllocations:
    def test_accepts_split_within_record_hours(self, db, record, holding_x, holding_y):
        result = AllocationLedger(db).set_allocations(
            record.id,
            allocation_items([{"holding": holding_x, "hours": 2}, {"holding": holding_y, "hours": 1}]),
        )

        assert result.total_allocated == 3
        assert result.unallocated == 0
        assert result.record_hours == 3
        assert _stored(db, record) == [(holding_x.id, 2), (holding_y.id, 1)]

    def test_over_allocation_is_rejected(self, db, record, holding_x, holding_y):
        ledger = AllocationLedger(db)
        ledger.set_allocations(record.id, allocation_items([{"holding": holding_x, "hours": 1}]))

        with pytest.raises(ValidationFailure) as exc_info:
            ledger.set_allocations(
                record.id,
                allocation_items(
                    [{"holding": holding_x, "hours": 2}, {"holding": holding_y, "hours": 1.5}]
                ),
            )

        assert str(exc_info.value) == "Total allocated hours (3.5) exceeds record hours (3)"
        assert _stored(db, record) == [(holding_x.id, 1)]

    def test_sum_just_above_record_hours_is_not_stored(self, db, record, holding_x, holding_y):
        with pytest.raises(ValidationFailure):
            AllocationLedger(db).set_allocations(
                record.id,
                allocation_items(
                    [{"holding": holding_x, "hours": 2.002}, {"holding": holding_y, "hours": 1.002}]
                ),
            )

        assert _stored(db, record) == []

    def test_duplicate_holding_is_rejected(self, db, record, holding_x):
        with pytest.raises(ValidationFailure, match="Duplicate credential allocations"):
            AllocationLedger(db).set_allocations(
                record.id,
                allocation_items([{"holding": holding_x, "hours": 1}, {"holding": holding_x, "hours": 1}]),
            )
        assert _stored(db, record) == []

    def test_replace_all(self, db, record, holding_x, holding_y):
        ledger = AllocationLedger(db)
        ledger.set_allocations(
            record.id,
            allocation_items([{"holding": holding_x, "hours": 2}, {"holding": holding_y, "hours": 1}]),
        )

        result = ledger.set_allocations(record.id, allocation_items([{"holding": holding_y, "hours": 0.5}]))

        assert result.total_allocated == 0.5
        assert result.unallocated == 2.5
        assert _stored(db, record) == [(holding_y.id, 0.5)]

    def test_empty_set_clears_allocations(self, db, record, holding_x):
        ledger = AllocationLedger(db)
        ledger.set_allocations(record.id, allocation_items([{"holding": holding_x, "hours": 2}]))

        result = ledger.set_allocations(record.id, [])

        assert result.total_allocated == 0
        assert result.unallocated == 3
        assert _stored(db, record) == []

    def test_holding_of_another_user_is_not_found(self, db, record, holding_x):
        stranger = make_holding(db, make_user(db), make_credential(db, name="CMA"))
        ledger = AllocationLedger(db)
        ledger.set_allocations(record.id, allocation_items([{"holding": holding_x, "hours": 1}]))

        with pytest.raises(NotFoundError):
            ledger.set_allocations(record.id, allocation_items([{"holding": stranger, "hours": 1}]))

        assert _stored(db, record) == [(holding_x.id, 1)]

    def test_unknown_record(self, db):
        with pytest.raises(NotFoundError, match="CPD record not found"):
            AllocationLedger(db).set_allocations(12345, [])

    def test_record_relationship_reflects_new_set(self, db, record, holding_x):
        AllocationLedger(db).set_allocations(
            record.id, allocation_items([{"holding": holding_x, "hours": 2}])
        )

        assert [a.hours for a in record.allocations] == [2]


class TestListAllocations:
    def test_by_record_and_by_holding(self, db, user, record, holding_x, holding_y):
        other = make_record(db, user, hours=5)
        ledger = AllocationLedger(db)
        ledger.set_allocations(record.id, allocation_items([{"holding": holding_x, "hours": 1}]))
        ledger.set_allocations(
            other.id,
            allocation_items([{"holding": holding_x, "hours": 2}, {"holding": holding_y, "hours": 3}]),
        )

        assert len(ledger.list_allocations(cpd_record_id=other.id)) == 2
        assert [a.hours for a in ledger.list_allocations(holding_id=holding_x.id)] == [1, 2]

    def test_filter_is_required(self, db):
        with pytest.raises(ValidationFailure):
            AllocationLedger(db).list_allocations()
