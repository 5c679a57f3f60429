"""
Root conftest.py for inventory tests.

Fixtures here are available to every test module under inventory/tests/.
"""
import pytest
from decimal import Decimal
from datetime import date, timedelta


# ============================================================================
# USERS & SETTINGS
# ============================================================================

@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(username="storekeeper", password="test-pass")


@pytest.fixture
def inventory_settings(db):
    from inventory.models import InventorySettings
    return InventorySettings.load()


@pytest.fixture
def fifo(inventory_settings):
    """Switch the consumption strategy to FIFO"""
    inventory_settings.consumption_strategy = "FIFO"
    inventory_settings.save()
    return inventory_settings


@pytest.fixture
def fefo(inventory_settings):
    """Switch the consumption strategy to FEFO (the default)"""
    inventory_settings.consumption_strategy = "FEFO"
    inventory_settings.save()
    return inventory_settings


@pytest.fixture
def today():
    return date(2026, 3, 10)


# ============================================================================
# INGREDIENTS & BATCHES
# ============================================================================

@pytest.fixture
def make_ingredient(db):
    from inventory.services import IngredientService

    counter = {"n": 0}

    def _make(name=None, unit="kg", reorder_level="0"):
        counter["n"] += 1
        return IngredientService.create(
            name=name or f"Ingredient {counter['n']}",
            unit=unit,
            reorder_level=Decimal(reorder_level),
        )

    return _make


@pytest.fixture
def flour(make_ingredient):
    return make_ingredient(name="Flour", unit="kg", reorder_level="5")


@pytest.fixture
def purchase(db, today):
    """Receive a batch through the recorder so a Purchase movement exists"""
    from inventory.services import StockMovementService

    def _purchase(ingredient, quantity, cost="1", days_ago=0, expires_in=None, **kwargs):
        expiry_date = today + timedelta(days=expires_in) if expires_in is not None else None
        return StockMovementService.record_purchase(
            ingredient_id=ingredient.id,
            quantity=Decimal(str(quantity)),
            cost_per_unit=Decimal(str(cost)),
            purchase_date=today - timedelta(days=days_ago),
            expiry_date=expiry_date,
            **kwargs
        )

    return _purchase


@pytest.fixture
def refresh():
    """Reload a model instance from the database"""
    def _refresh(obj):
        obj.refresh_from_db()
        return obj
    return _refresh
