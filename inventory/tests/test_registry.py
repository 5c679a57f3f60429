"""
Tests for InventorySettingsService and IngredientService.
"""
import pytest
from decimal import Decimal

from inventory.models import InventorySettings
from inventory.services import (
    InventorySettingsService,
    IngredientService,
    StockMovementService,
    ValidationError,
    NotFoundError,
)


@pytest.mark.django_db
class TestInventorySettings:

    def test_defaults(self, db):
        assert InventorySettingsService.get_all() == {
            "consumption_strategy": "FEFO",
            "auto_expire_batches": True,
            "expiry_warning_days": 7,
        }

    def test_singleton(self, db):
        InventorySettings().save()
        InventorySettings.load()

        assert InventorySettings.objects.count() == 1

    def test_update(self, db):
        result = InventorySettingsService.update(consumption_strategy="FIFO", expiry_warning_days="3")

        assert result["consumption_strategy"] == "FIFO"
        assert result["expiry_warning_days"] == 3
        assert InventorySettingsService.get_consumption_strategy() == "FIFO"

    @pytest.mark.parametrize("kwargs", [
        {"consumption_strategy": "LIFO"},
        {"expiry_warning_days": -1},
        {"expiry_warning_days": "soon"},
        {"costing_method": "AVG"},
    ])
    def test_update_rejects_invalid(self, db, kwargs):
        with pytest.raises(ValidationError):
            InventorySettingsService.update(**kwargs)

        assert InventorySettingsService.get_consumption_strategy() == "FEFO"


@pytest.mark.django_db
class TestIngredientService:

    def test_create(self, db):
        ingredient = IngredientService.create(name="  Butter ", unit="kg", reorder_level="1.5")

        assert ingredient.name == "Butter"
        assert ingredient.reorder_level == Decimal("1.5")
        assert ingredient.current_stock_quantity == Decimal("0")

    def test_duplicate_name_rejected(self, flour):
        with pytest.raises(ValidationError):
            IngredientService.create(name="flour")

    def test_get_unknown(self, db):
        with pytest.raises(NotFoundError):
            IngredientService.get(31337)

        assert IngredientService.get_by_id("not-an-id") is None

    def test_update_cannot_touch_stock(self, flour, purchase, refresh):
        purchase(flour, 4)

        IngredientService.update(flour.id, name="Bread Flour", current_stock_quantity=Decimal("99"))

        flour = refresh(flour)
        assert flour.name == "Bread Flour"
        assert flour.current_stock_quantity == Decimal("4")

    def test_delete_unused(self, make_ingredient):
        ingredient = make_ingredient(name="Unused")

        IngredientService.delete(ingredient.id)

        assert not IngredientService.exists(ingredient.id)

    def test_delete_refused_with_batches(self, flour, purchase):
        batch = purchase(flour, 1)
        StockMovementService.dispose_batch(batch.id)

        with pytest.raises(ValidationError):
            IngredientService.delete(flour.id)

        assert IngredientService.exists(flour.id)

    def test_list(self, make_ingredient):
        make_ingredient(name="Paprika")
        make_ingredient(name="Pepper")
        hidden = make_ingredient(name="Parsley")
        IngredientService.update(hidden.id, is_active=False)

        assert [i.name for i in IngredientService.list(search="p")] == ["Paprika", "Pepper"]
        assert len(IngredientService.list(active_only=False)) == 3

    def test_unit_normalised(self, db):
        ingredient = IngredientService.create(name="Milk", unit=" L ")

        assert ingredient.unit == "l"

    @pytest.mark.parametrize("unit", ["litre", "kgs", "cup"])
    def test_unknown_unit_rejected(self, make_ingredient, unit):
        with pytest.raises(ValidationError) as exc:
            IngredientService.create(name="Oil", unit=unit)
        assert exc.value.field == "unit"

        ingredient = make_ingredient(name="Vinegar", unit="ml")
        with pytest.raises(ValidationError):
            IngredientService.update(ingredient.id, unit=unit)
