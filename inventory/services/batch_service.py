"""
Ingredient Batch Service - Batch ledger with FIFO/FEFO ordering
"""
import logging
from typing import Optional, List
from decimal import Decimal
from datetime import date

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from inventory.models import IngredientBatch, Ingredient, Supplier
from inventory.services.base_service import (
    BaseService, ValidationError, NotFoundError, InsufficientQuantityError,
    to_quantity, to_date, ZERO
)
from inventory.services.ingredient_service import IngredientService
from inventory.services.settings_service import InventorySettingsService

logger = logging.getLogger(__name__)


class IngredientBatchService(BaseService):
    """Manage ingredient batches"""

    model = IngredientBatch

    Status = IngredientBatch.Status

    # Allowed manual status changes
    TRANSITIONS = {
        "active": {"depleted", "expired", "disposed"},
        "depleted": {"active"},
        "expired": {"disposed"},
        "disposed": set(),
    }

    UPDATABLE_FIELDS = {"notes", "supplier_id", "manufacturing_date", "expiry_date"}

    # ==================== GET & LIST ====================

    @classmethod
    def get(cls, batch_id: int) -> IngredientBatch:
        batch = cls.model.objects.select_related("ingredient", "supplier").filter(id=batch_id).first()
        if not batch:
            raise NotFoundError("Batch", batch_id)
        return batch

    @classmethod
    def get_for_update(cls, batch_id: int) -> IngredientBatch:
        try:
            return cls.model.objects.select_for_update().select_related("ingredient").get(id=batch_id)
        except (cls.model.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Batch", batch_id)

    @classmethod
    def find_by_number(cls, batch_number: str, ingredient_id: int = None) -> IngredientBatch:
        queryset = cls.model.objects.filter(batch_number=batch_number)

        if ingredient_id:
            queryset = queryset.filter(ingredient_id=ingredient_id)

        batch = queryset.select_related("ingredient").order_by("id").first()
        if not batch:
            raise NotFoundError("Batch", batch_number)
        return batch

    @classmethod
    def list(cls,
             ingredient_id: int = None,
             status: str = None,
             order_by: str = "-purchase_date",
             limit: int = 100) -> List[IngredientBatch]:
        queryset = cls.model.objects.select_related("ingredient", "supplier")

        if ingredient_id:
            queryset = queryset.filter(ingredient_id=ingredient_id)

        if status:
            if status not in cls.Status.values:
                raise ValidationError(f"Invalid status. Valid: {cls.Status.values}", "status")
            queryset = queryset.filter(status=status)

        queryset = queryset.order_by(order_by, "-id")
        if limit:
            queryset = queryset[:limit]
        return list(queryset)

    @classmethod
    def get_active_batches_for_ingredient(cls,
                                          ingredient_id: int,
                                          order: str = None,
                                          for_update: bool = False) -> List[IngredientBatch]:
        """
        Active batches that still hold stock, in consumption order.

        FIFO: oldest purchase first. FEFO: soonest expiry first, batches
        without an expiry date last. Ties always fall back to purchase date
        and then id, so the order is deterministic.
        """
        strategy = order or InventorySettingsService.get_consumption_strategy()
        InventorySettingsService.validate_strategy(strategy)

        queryset = cls.model.objects.filter(
            ingredient_id=ingredient_id,
            status=cls.Status.ACTIVE,
            quantity_remaining__gt=0,
        )

        if strategy == "FEFO":
            queryset = queryset.order_by(
                F("expiry_date").asc(nulls_last=True), "purchase_date", "id"
            )
        else:
            queryset = queryset.order_by("purchase_date", "id")

        if for_update:
            queryset = queryset.select_for_update()

        return list(queryset)

    # ==================== CREATE ====================

    @classmethod
    @transaction.atomic
    def create_batch(cls,
                     ingredient_id: int,
                     quantity: Decimal,
                     cost_per_unit: Decimal,
                     purchase_date: date = None,
                     expiry_date: date = None,
                     supplier_id: int = None,
                     manufacturing_date: date = None,
                     batch_number: str = None,
                     notes: str = "",
                     user_id: int = None) -> IngredientBatch:
        """
        Create a new active batch holding its full purchased quantity.

        Does not write a movement or touch the ingredient's cached stock;
        StockMovementService.record_purchase does both.
        """
        ingredient = Ingredient.objects.filter(id=ingredient_id).first()
        if not ingredient:
            raise NotFoundError("Ingredient", ingredient_id)

        quantity = to_quantity(quantity, "quantity")
        if quantity <= 0:
            raise ValidationError("Quantity must be positive", "quantity")

        cost_per_unit = to_quantity(cost_per_unit, "cost_per_unit")
        if cost_per_unit < 0:
            raise ValidationError("Cost per unit cannot be negative", "cost_per_unit")

        purchase_date = to_date(purchase_date, "purchase_date") or timezone.localdate()
        expiry_date = to_date(expiry_date, "expiry_date")
        manufacturing_date = to_date(manufacturing_date, "manufacturing_date")
        cls._validate_dates(manufacturing_date, expiry_date)

        supplier = cls._get_supplier(supplier_id)

        if batch_number:
            batch_number = batch_number.strip()
            if cls.model.objects.filter(ingredient_id=ingredient.id, batch_number=batch_number).exists():
                raise ValidationError(
                    f"Batch number '{batch_number}' already exists for this ingredient", "batch_number"
                )
        else:
            batch_number = cls._generate_batch_number(ingredient)

        batch = cls.model.objects.create(
            ingredient=ingredient,
            batch_number=batch_number,
            supplier=supplier,
            quantity_purchased=quantity,
            quantity_remaining=quantity,
            cost_per_unit=cost_per_unit,
            purchase_date=purchase_date,
            manufacturing_date=manufacturing_date,
            expiry_date=expiry_date,
            status=cls.Status.ACTIVE,
            notes=notes or "",
            created_by_id=user_id,
        )

        logger.debug("Batch %s created for %s: %s @ %s", batch_number, ingredient.name, quantity, cost_per_unit)
        return batch

    @classmethod
    def _generate_batch_number(cls, ingredient: Ingredient) -> str:
        """Generate sequential batch number, e.g. B12-0003"""
        sequence = cls.model.objects.filter(ingredient=ingredient).count() + 1
        batch_number = f"B{ingredient.id}-{sequence:04d}"

        # Skip numbers already taken by manually numbered batches
        while cls.model.objects.filter(ingredient=ingredient, batch_number=batch_number).exists():
            sequence += 1
            batch_number = f"B{ingredient.id}-{sequence:04d}"

        return batch_number

    @classmethod
    def _get_supplier(cls, supplier_id: Optional[int]) -> Optional[Supplier]:
        if not supplier_id:
            return None
        supplier = Supplier.objects.filter(id=supplier_id).first()
        if not supplier:
            raise NotFoundError("Supplier", supplier_id)
        return supplier

    @classmethod
    def _validate_dates(cls, manufacturing_date: Optional[date], expiry_date: Optional[date]):
        if manufacturing_date and expiry_date and expiry_date < manufacturing_date:
            raise ValidationError("Expiry date cannot be before manufacturing date", "expiry_date")

    # ==================== QUANTITY ====================

    @classmethod
    @transaction.atomic
    def adjust_remaining(cls, batch_id: int, delta: Decimal) -> IngredientBatch:
        """
        Apply a signed change to a batch's remaining quantity.

        An active batch that reaches exactly zero becomes depleted; a
        depleted batch lifted above zero becomes active again. Expired
        batches keep their status either way.
        """
        delta = to_quantity(delta, "delta")
        batch = cls.get_for_update(batch_id)

        if batch.status == cls.Status.DISPOSED:
            raise ValidationError(f"Batch {batch.batch_number} is disposed", "batch_id")

        new_remaining = batch.quantity_remaining + delta

        if new_remaining < 0:
            raise InsufficientQuantityError(batch.batch_number, -delta, batch.quantity_remaining)

        if new_remaining > batch.quantity_purchased:
            raise ValidationError(
                f"Batch {batch.batch_number} cannot hold more than its purchased quantity "
                f"({batch.quantity_purchased})",
                "delta"
            )

        batch.quantity_remaining = new_remaining
        update_fields = ["quantity_remaining", "updated_at"]

        if batch.status == cls.Status.ACTIVE and new_remaining == ZERO:
            batch.status = cls.Status.DEPLETED
            update_fields.append("status")
        elif batch.status == cls.Status.DEPLETED and new_remaining > ZERO:
            batch.status = cls.Status.ACTIVE
            update_fields.append("status")

        batch.save(update_fields=update_fields)
        return batch

    # ==================== UPDATE ====================

    @classmethod
    @transaction.atomic
    def update(cls, batch_id: int, **kwargs) -> IngredientBatch:
        """Update batch metadata. Quantities and cost are immutable."""
        unknown = set(kwargs) - cls.UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {sorted(unknown)}", sorted(unknown)[0])

        batch = cls.get_for_update(batch_id)
        update_fields = ["updated_at"]

        if "notes" in kwargs:
            batch.notes = kwargs["notes"] or ""
            update_fields.append("notes")

        if "supplier_id" in kwargs:
            batch.supplier = cls._get_supplier(kwargs["supplier_id"])
            update_fields.append("supplier")

        for field in ["manufacturing_date", "expiry_date"]:
            if field in kwargs:
                setattr(batch, field, to_date(kwargs[field], field))
                update_fields.append(field)

        cls._validate_dates(batch.manufacturing_date, batch.expiry_date)

        batch.save(update_fields=update_fields)
        return batch

    # ==================== STATUS MANAGEMENT ====================

    @classmethod
    def _check_transition(cls, batch: IngredientBatch, status: str):
        if status not in cls.Status.values:
            raise ValidationError(f"Invalid status. Valid: {cls.Status.values}", "status")

        if status not in cls.TRANSITIONS[batch.status]:
            raise ValidationError(
                f"Cannot change batch {batch.batch_number} from {batch.status} to {status}", "status"
            )

        if status == cls.Status.DEPLETED and batch.quantity_remaining != ZERO:
            raise ValidationError(f"Batch {batch.batch_number} still holds stock", "status")

        if status == cls.Status.ACTIVE and batch.quantity_remaining <= ZERO:
            raise ValidationError(f"Batch {batch.batch_number} has no stock left", "status")

    @classmethod
    @transaction.atomic
    def set_status(cls, batch_id: int, status: str, notes: str = "") -> IngredientBatch:
        """Change batch status and refresh the ingredient's cached stock"""
        status = str(status)
        batch = cls.get_by_id(batch_id)
        if not batch:
            raise NotFoundError("Batch", batch_id)

        ingredient = IngredientService.get_for_update(batch.ingredient_id)
        batch = cls.get_for_update(batch_id)
        cls._check_transition(batch, status)

        old_status = batch.status
        batch.status = status
        update_fields = ["status", "updated_at"]

        if notes:
            batch.notes = f"{batch.notes}\n{notes}".strip()
            update_fields.append("notes")

        batch.save(update_fields=update_fields)
        IngredientService.recompute_stock(ingredient)

        logger.info("Batch %s status changed: %s -> %s", batch.batch_number, old_status, status)
        return batch
