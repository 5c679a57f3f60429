"""
Ingredient Service - Ingredient registry and cached stock
"""
import logging
from typing import List
from decimal import Decimal

from django.db import transaction

from inventory.models import Ingredient, IngredientBatch
from inventory.services.base_service import (
    BaseService, ValidationError, NotFoundError, to_quantity, ZERO
)

logger = logging.getLogger(__name__)


class IngredientService(BaseService):
    """Manage ingredients"""

    model = Ingredient

    UNITS = ["kg", "g", "l", "ml", "pcs", "dozen", "box", "pack"]

    @classmethod
    def validate_unit(cls, unit: str) -> str:
        unit = (unit or "pcs").strip().lower()
        if unit not in cls.UNITS:
            raise ValidationError(f"Invalid unit. Valid: {cls.UNITS}", "unit")
        return unit

    # ==================== GET ====================

    @classmethod
    def get(cls, ingredient_id: int) -> Ingredient:
        ingredient = cls.get_by_id(ingredient_id)
        if not ingredient:
            raise NotFoundError("Ingredient", ingredient_id)
        return ingredient

    @classmethod
    def get_for_update(cls, ingredient_id: int) -> Ingredient:
        """
        Lock the ingredient row for the rest of the transaction.

        Every stock mutation goes through here first, so two operations on
        the same ingredient never interleave.
        """
        try:
            return cls.model.objects.select_for_update().get(id=ingredient_id)
        except (cls.model.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Ingredient", ingredient_id)

    @classmethod
    def list(cls, search: str = None, active_only: bool = True) -> List[Ingredient]:
        queryset = cls.model.objects.all()

        if active_only:
            queryset = queryset.filter(is_active=True)

        if search:
            queryset = queryset.filter(name__icontains=search)

        return list(queryset.order_by("name"))

    # ==================== CREATE / UPDATE ====================

    @classmethod
    @transaction.atomic
    def create(cls,
               name: str,
               unit: str = "pcs",
               reorder_level: Decimal = ZERO,
               cost_per_unit: Decimal = ZERO) -> Ingredient:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Ingredient name is required", "name")

        if cls.model.objects.filter(name__iexact=name).exists():
            raise ValidationError(f"Ingredient '{name}' already exists", "name")

        unit = cls.validate_unit(unit)

        reorder_level = to_quantity(reorder_level, "reorder_level")
        if reorder_level < 0:
            raise ValidationError("Reorder level cannot be negative", "reorder_level")

        cost_per_unit = to_quantity(cost_per_unit, "cost_per_unit")
        if cost_per_unit < 0:
            raise ValidationError("Cost per unit cannot be negative", "cost_per_unit")

        ingredient = cls.model.objects.create(
            name=name,
            unit=unit,
            reorder_level=reorder_level,
            cost_per_unit=cost_per_unit,
        )
        logger.info("Ingredient created: %s (id=%s)", ingredient.name, ingredient.id)
        return ingredient

    @classmethod
    @transaction.atomic
    def update(cls, ingredient_id: int, **kwargs) -> Ingredient:
        """Update descriptive fields. current_stock_quantity is never set directly."""
        ingredient = cls.get(ingredient_id)
        update_fields = ["updated_at"]

        if "name" in kwargs:
            name = (kwargs["name"] or "").strip()
            if not name:
                raise ValidationError("Ingredient name is required", "name")
            if cls.model.objects.filter(name__iexact=name).exclude(id=ingredient.id).exists():
                raise ValidationError(f"Ingredient '{name}' already exists", "name")
            ingredient.name = name
            update_fields.append("name")

        if "unit" in kwargs:
            ingredient.unit = cls.validate_unit(kwargs["unit"])
            update_fields.append("unit")

        for field in ["reorder_level", "cost_per_unit"]:
            if field in kwargs:
                value = to_quantity(kwargs[field], field)
                if value < 0:
                    raise ValidationError(f"{field} cannot be negative", field)
                setattr(ingredient, field, value)
                update_fields.append(field)

        if "is_active" in kwargs:
            ingredient.is_active = bool(kwargs["is_active"])
            update_fields.append("is_active")

        ingredient.save(update_fields=update_fields)
        return ingredient

    @classmethod
    @transaction.atomic
    def delete(cls, ingredient_id: int) -> None:
        ingredient = cls.get(ingredient_id)

        if ingredient.batches.exists():
            raise ValidationError(
                f"Cannot delete '{ingredient.name}': it has batch history. Deactivate it instead.",
                "ingredient_id"
            )

        ingredient.delete()
        logger.info("Ingredient deleted: %s (id=%s)", ingredient.name, ingredient_id)

    # ==================== STOCK CACHE ====================

    @classmethod
    def active_stock(cls, ingredient_id: int) -> Decimal:
        """Sum of remaining quantity across the ingredient's active batches"""
        remaining = IngredientBatch.objects.filter(
            ingredient_id=ingredient_id,
            status=IngredientBatch.Status.ACTIVE,
        ).values_list("quantity_remaining", flat=True)
        return sum(remaining, ZERO)

    @classmethod
    def recompute_stock(cls, ingredient: Ingredient) -> Decimal:
        """Refresh current_stock_quantity from the batch ledger. Call inside the ingredient lock."""
        total = cls.active_stock(ingredient.id)
        ingredient.current_stock_quantity = total
        ingredient.save(update_fields=["current_stock_quantity", "updated_at"])
        return total

