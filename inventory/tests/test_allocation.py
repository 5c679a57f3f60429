"""
Tests for BatchAllocationService.
"""
import pytest
from decimal import Decimal
from django.db import transaction

from inventory.models import IngredientBatch
from inventory.services import (
    BatchAllocationService,
    ValidationError,
    NotFoundError,
    InsufficientStockError,
)


@pytest.mark.django_db
class TestAllocate:

    def test_fifo_takes_oldest_batch_first(self, flour, purchase, refresh):
        old = purchase(flour, 5, cost="2", days_ago=10, expires_in=20)
        new = purchase(flour, 5, cost="3", days_ago=1, expires_in=3)

        with transaction.atomic():
            result = BatchAllocationService.allocate(flour.id, Decimal("7"), strategy="FIFO")

        assert [(line.batch_id, line.quantity) for line in result.lines] == [
            (old.id, Decimal("5")),
            (new.id, Decimal("2")),
        ]
        assert refresh(old).status == IngredientBatch.Status.DEPLETED
        assert refresh(new).quantity_remaining == Decimal("3")
        assert refresh(flour).current_stock_quantity == Decimal("3")

    def test_fefo_takes_soonest_expiry_first(self, flour, purchase, refresh):
        old = purchase(flour, 5, cost="2", days_ago=10, expires_in=20)
        new = purchase(flour, 5, cost="3", days_ago=1, expires_in=3)

        with transaction.atomic():
            result = BatchAllocationService.allocate(flour.id, Decimal("7"), strategy="FEFO")

        assert [(line.batch_id, line.quantity) for line in result.lines] == [
            (new.id, Decimal("5")),
            (old.id, Decimal("2")),
        ]
        assert refresh(old).quantity_remaining == Decimal("3")

    def test_strategy_defaults_to_settings(self, flour, purchase, fifo):
        old = purchase(flour, 5, days_ago=10, expires_in=20)
        purchase(flour, 5, days_ago=1, expires_in=3)

        with transaction.atomic():
            result = BatchAllocationService.allocate(flour.id, Decimal("1"))

        assert result.strategy == "FIFO"
        assert result.lines[0].batch_id == old.id

    def test_lines_carry_before_and_after(self, flour, purchase):
        batch = purchase(flour, 5, cost="2.5")

        with transaction.atomic():
            result = BatchAllocationService.allocate(flour.id, Decimal("1.25"))

        line = result.lines[0]
        assert line.batch_number == batch.batch_number
        assert line.quantity_before == Decimal("5")
        assert line.quantity_after == Decimal("3.75")
        assert line.cost_per_unit == Decimal("2.5")

    def test_costs(self, flour, purchase):
        purchase(flour, 2, cost="4", days_ago=2)
        purchase(flour, 2, cost="1", days_ago=1)

        with transaction.atomic():
            result = BatchAllocationService.allocate(flour.id, Decimal("3"), strategy="FIFO")

        # 2 x 4 + 1 x 1
        assert result.total_cost == Decimal("9")
        assert result.weighted_unit_cost == Decimal("3.0000")

    def test_shortfall_changes_nothing(self, flour, purchase, refresh):
        first = purchase(flour, 2, days_ago=2)
        second = purchase(flour, 1, days_ago=1)

        with pytest.raises(InsufficientStockError) as exc:
            with transaction.atomic():
                BatchAllocationService.allocate(flour.id, Decimal("3.5"))

        assert exc.value.required == Decimal("3.5")
        assert exc.value.available == Decimal("3")
        assert exc.value.shortage == Decimal("0.5")
        assert refresh(first).quantity_remaining == Decimal("2")
        assert refresh(second).quantity_remaining == Decimal("1")
        assert refresh(flour).current_stock_quantity == Decimal("3")

    def test_shortfall_with_no_batches(self, flour):
        with pytest.raises(InsufficientStockError) as exc:
            with transaction.atomic():
                BatchAllocationService.allocate(flour.id, Decimal("1"))

        assert exc.value.available == Decimal("0")

    def test_expired_batches_are_not_allocated(self, flour, purchase):
        from inventory.services import IngredientBatchService

        batch = purchase(flour, 5)
        IngredientBatchService.set_status(batch.id, "expired")

        with pytest.raises(InsufficientStockError):
            with transaction.atomic():
                BatchAllocationService.allocate(flour.id, Decimal("1"))

    def test_zero_quantity_is_noop(self, flour, purchase, refresh):
        batch = purchase(flour, 5)

        result = BatchAllocationService.allocate(flour.id, Decimal("0"))

        assert result.lines == []
        assert result.total_cost == Decimal("0")
        assert result.weighted_unit_cost == Decimal("0")
        assert refresh(batch).quantity_remaining == Decimal("5")

    def test_negative_quantity_rejected(self, flour):
        with pytest.raises(ValidationError):
            BatchAllocationService.allocate(flour.id, Decimal("-1"))

    def test_unknown_ingredient(self, db):
        with pytest.raises(NotFoundError):
            with transaction.atomic():
                BatchAllocationService.allocate(424242, Decimal("1"))

    def test_many_small_allocations_do_not_drift(self, flour, purchase, refresh):
        batch = purchase(flour, 1)

        for _ in range(10):
            with transaction.atomic():
                BatchAllocationService.allocate(flour.id, Decimal("0.1"))

        batch = refresh(batch)
        assert batch.quantity_remaining == Decimal("0")
        assert batch.status == IngredientBatch.Status.DEPLETED
        assert refresh(flour).current_stock_quantity == Decimal("0")
