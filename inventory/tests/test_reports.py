"""
Tests for InventoryReportService.
"""
import pytest
from decimal import Decimal
from datetime import timedelta

from inventory.models import StockMovement
from inventory.services import (
    InventoryReportService,
    StockMovementService,
    IngredientBatchService,
)


@pytest.mark.django_db
class TestValuation:

    def test_empty_inventory_is_zero(self, db):
        assert InventoryReportService.get_inventory_valuation() == Decimal("0")

    def test_values_active_batches_only(self, flour, make_ingredient, purchase):
        sugar = make_ingredient(name="Sugar")
        purchase(flour, 2, cost="3.5")
        purchase(flour, 1, cost="10")
        expired = purchase(flour, 100, cost="1")
        purchase(sugar, 4, cost="0.25")
        IngredientBatchService.set_status(expired.id, "expired")

        assert InventoryReportService.get_inventory_valuation() == Decimal("18")
        assert InventoryReportService.get_inventory_valuation(ingredient_id=flour.id) == Decimal("17")

    def test_weighted_average_and_earliest_expiry(self, flour, purchase, today):
        purchase(flour, 1, cost="2", expires_in=9)
        purchase(flour, 3, cost="6", expires_in=4)
        purchase(flour, 1, cost="1")

        # (2 + 18 + 1) / 5
        assert InventoryReportService.get_weighted_average_cost(flour.id) == Decimal("4.2")
        assert InventoryReportService.get_earliest_expiry(flour.id) == today + timedelta(days=4)

    def test_weighted_average_without_stock(self, flour):
        assert InventoryReportService.get_weighted_average_cost(flour.id) == Decimal("0")
        assert InventoryReportService.get_earliest_expiry(flour.id) is None

    def test_reads_are_idempotent(self, flour, purchase):
        purchase(flour, 2, cost="3")

        first = InventoryReportService.get_inventory_valuation()
        second = InventoryReportService.get_inventory_valuation()

        assert first == second
        assert StockMovement.objects.count() == 1


@pytest.mark.django_db
class TestExpiringBatches:

    def test_window_and_order(self, flour, purchase, today):
        soon = purchase(flour, 1, expires_in=3)
        edge = purchase(flour, 1, expires_in=7)
        purchase(flour, 1, expires_in=8)
        purchase(flour, 1)
        overdue = purchase(flour, 1, expires_in=-2)

        result = InventoryReportService.get_expiring_batches(within_days=7, today=today)

        assert [b.batch_id for b in result] == [overdue.id, soon.id, edge.id]
        assert [b.days_until_expiry for b in result] == [-2, 3, 7]
        assert result[0].is_past_expiry

    def test_expiring_value(self, flour, purchase, today):
        purchase(flour, "2.5", cost="4", expires_in=1)

        result = InventoryReportService.get_expiring_batches(within_days=3, today=today)

        assert result[0].value == Decimal("10")
        assert not result[0].is_past_expiry

    def test_default_window_from_settings(self, flour, purchase, today):
        from inventory.services import InventorySettingsService

        purchase(flour, 1, expires_in=2)
        purchase(flour, 1, expires_in=6)
        InventorySettingsService.update(expiry_warning_days=3)

        result = InventoryReportService.get_expiring_batches(today=today)

        assert len(result) == 1

    def test_excludes_swept_and_depleted(self, flour, purchase, today):
        swept = purchase(flour, 1, expires_in=-1)
        used = purchase(flour, 1, expires_in=1)
        StockMovementService.expire_batches(as_of=today)
        StockMovementService.record_waste(
            ingredient_id=flour.id, quantity="1", reason="Other", batch_id=used.id
        )

        result = InventoryReportService.get_expiring_batches(within_days=7, today=today)

        assert swept.id not in [b.batch_id for b in result]
        assert result == []


@pytest.mark.django_db
class TestLowStock:

    def test_low_stock(self, make_ingredient, purchase):
        low = make_ingredient(name="Basil", reorder_level="2")
        at_level = make_ingredient(name="Cream", reorder_level="3")
        fine = make_ingredient(name="Salt", reorder_level="1")
        make_ingredient(name="Water", reorder_level="0")
        purchase(low, 1)
        purchase(at_level, 3)
        purchase(fine, 5)

        result = InventoryReportService.get_low_stock()

        assert [i.name for i in result] == ["Basil", "Cream"]

    def test_ingredient_without_batches_is_low(self, make_ingredient):
        make_ingredient(name="Yeast", reorder_level="0.5")

        assert [i.name for i in InventoryReportService.get_low_stock()] == ["Yeast"]

    def test_inactive_ingredients_ignored(self, make_ingredient):
        from inventory.services import IngredientService

        ingredient = make_ingredient(name="Saffron", reorder_level="1")
        IngredientService.update(ingredient.id, is_active=False)

        assert InventoryReportService.get_low_stock() == []


@pytest.mark.django_db
class TestHistory:

    def test_usage_report(self, flour, purchase):
        purchase(flour, 10, cost="2")
        StockMovementService.record_consumption(ingredient_id=flour.id, quantity="3")
        StockMovementService.record_waste(ingredient_id=flour.id, quantity="1", reason="Burnt")

        report = InventoryReportService.get_usage_report()

        assert len(report) == 1
        row = report[0]
        assert row["purchased"] == Decimal("10")
        assert row["consumed"] == Decimal("3")
        assert row["wasted"] == Decimal("1")
        assert row["consumption_cost"] == Decimal("6")
        assert row["waste_cost"] == Decimal("2")

    def test_movements_and_waste_history(self, flour, make_ingredient, purchase):
        sugar = make_ingredient(name="Sugar")
        purchase(flour, 5)
        purchase(sugar, 5)
        StockMovementService.record_waste(ingredient_id=sugar.id, quantity="1", reason="Theft")

        flour_movements = InventoryReportService.get_movements(ingredient_id=flour.id)
        waste_movements = InventoryReportService.get_movements(movement_type="Waste")
        history = InventoryReportService.get_waste_history(reason="Theft")

        assert len(flour_movements) == 1
        assert [m.ingredient_id for m in waste_movements] == [sugar.id]
        assert [w.ingredient_id for w in history] == [sugar.id]
        assert InventoryReportService.get_waste_history(ingredient_id=flour.id) == []
