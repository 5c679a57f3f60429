"""
Inventory Report Service - Valuation, expiry and usage reports

Read only. Nothing here writes to the ledger.
"""
from dataclasses import dataclass
from typing import Dict, Any, List, Optional
from decimal import Decimal
from datetime import date, timedelta

from django.db.models import F
from django.utils import timezone

from inventory.models import (
    Ingredient, IngredientBatch, StockMovement, WasteRecord
)
from inventory.services.base_service import round_decimal, to_date, ZERO
from inventory.services.batch_service import IngredientBatchService
from inventory.services.settings_service import InventorySettingsService


@dataclass(frozen=True)
class ExpiringBatch:
    batch_id: int
    batch_number: str
    ingredient_id: int
    ingredient_name: str
    unit: str
    quantity_remaining: Decimal
    cost_per_unit: Decimal
    expiry_date: date
    days_until_expiry: int

    @property
    def value(self) -> Decimal:
        return round_decimal(self.quantity_remaining * self.cost_per_unit)

    @property
    def is_past_expiry(self) -> bool:
        return self.days_until_expiry < 0


class InventoryReportService:

    # ==================== VALUATION ====================

    @classmethod
    def get_inventory_valuation(cls, ingredient_id: int = None) -> Decimal:
        """Value of stock on hand across active batches"""
        rows = cls._active_batches(ingredient_id).values_list("quantity_remaining", "cost_per_unit")
        return round_decimal(sum((remaining * cost for remaining, cost in rows), ZERO))

    @classmethod
    def get_weighted_average_cost(cls, ingredient_id: int) -> Decimal:
        rows = list(cls._active_batches(ingredient_id).values_list("quantity_remaining", "cost_per_unit"))
        quantity = sum((remaining for remaining, _ in rows), ZERO)
        if not quantity:
            return ZERO
        value = sum((remaining * cost for remaining, cost in rows), ZERO)
        return round_decimal(value / quantity)

    @classmethod
    def get_earliest_expiry(cls, ingredient_id: int) -> Optional[date]:
        batch = cls._active_batches(ingredient_id).filter(
            expiry_date__isnull=False
        ).order_by("expiry_date").first()
        return batch.expiry_date if batch else None

    # ==================== EXPIRY & LOW STOCK ====================

    @classmethod
    def get_expiring_batches(cls, within_days: int = None, today: date = None) -> List[ExpiringBatch]:
        """
        Active batches expiring within the warning window, soonest first.

        Batches already past their expiry date that the sweep has not yet
        marked expired are included with a negative days_until_expiry.
        """
        if within_days is None:
            within_days = InventorySettingsService.load().expiry_warning_days
        today = to_date(today, "today") or timezone.localdate()
        threshold = today + timedelta(days=int(within_days))

        batches = cls._active_batches().filter(
            expiry_date__isnull=False,
            expiry_date__lte=threshold,
        ).select_related("ingredient").order_by("expiry_date", "id")

        return [
            ExpiringBatch(
                batch_id=batch.id,
                batch_number=batch.batch_number,
                ingredient_id=batch.ingredient_id,
                ingredient_name=batch.ingredient.name,
                unit=batch.ingredient.unit,
                quantity_remaining=batch.quantity_remaining,
                cost_per_unit=batch.cost_per_unit,
                expiry_date=batch.expiry_date,
                days_until_expiry=(batch.expiry_date - today).days,
            )
            for batch in batches
        ]

    @classmethod
    def get_low_stock(cls) -> List[Ingredient]:
        """Active ingredients at or below their reorder level"""
        return list(
            Ingredient.objects.filter(
                is_active=True,
                reorder_level__gt=0,
                current_stock_quantity__lte=F("reorder_level"),
            ).order_by("name")
        )

    @classmethod
    def get_active_batches_for_ingredient(cls,
                                          ingredient_id: int,
                                          order: str = None) -> List[IngredientBatch]:
        return IngredientBatchService.get_active_batches_for_ingredient(ingredient_id, order=order)

    # ==================== HISTORY ====================

    @classmethod
    def get_movements(cls,
                      ingredient_id: int = None,
                      movement_type: str = None,
                      date_from: date = None,
                      date_to: date = None,
                      limit: int = 100) -> List[StockMovement]:
        queryset = StockMovement.objects.select_related("ingredient", "batch")

        if ingredient_id:
            queryset = queryset.filter(ingredient_id=ingredient_id)
        if movement_type:
            queryset = queryset.filter(movement_type=movement_type)

        queryset = cls._filter_dates(queryset, date_from, date_to)
        queryset = queryset.order_by("-created_at", "-id")
        if limit:
            queryset = queryset[:limit]
        return list(queryset)

    @classmethod
    def get_waste_history(cls,
                          ingredient_id: int = None,
                          reason: str = None,
                          date_from: date = None,
                          date_to: date = None,
                          limit: int = 100) -> List[WasteRecord]:
        queryset = WasteRecord.objects.select_related("ingredient", "batch")

        if ingredient_id:
            queryset = queryset.filter(ingredient_id=ingredient_id)
        if reason:
            queryset = queryset.filter(reason=reason)

        queryset = cls._filter_dates(queryset, date_from, date_to)
        queryset = queryset.order_by("-created_at", "-id")
        if limit:
            queryset = queryset[:limit]
        return list(queryset)

    @classmethod
    def get_usage_report(cls, date_from: date = None, date_to: date = None) -> List[Dict[str, Any]]:
        """
        Per-ingredient totals of purchased, consumed and wasted quantity in
        the period, with the cost of what was consumed and wasted.
        """
        movements = cls._filter_dates(
            StockMovement.objects.select_related("ingredient"), date_from, date_to
        ).order_by("ingredient__name", "id")

        report: Dict[int, Dict[str, Any]] = {}
        for movement in movements:
            row = report.get(movement.ingredient_id)
            if row is None:
                row = report[movement.ingredient_id] = {
                    "ingredient_id": movement.ingredient_id,
                    "ingredient": movement.ingredient.name,
                    "unit": movement.ingredient.unit,
                    "purchased": ZERO,
                    "consumed": ZERO,
                    "wasted": ZERO,
                    "adjusted": ZERO,
                    "consumption_cost": ZERO,
                    "waste_cost": ZERO,
                }

            amount = movement.change_amount
            if movement.movement_type == StockMovement.MovementType.PURCHASE:
                row["purchased"] += amount
            elif movement.movement_type == StockMovement.MovementType.CONSUMPTION:
                row["consumed"] += -amount
                row["consumption_cost"] += round_decimal(movement.total_cost)
            elif movement.movement_type == StockMovement.MovementType.WASTE:
                row["wasted"] += -amount
                row["waste_cost"] += round_decimal(movement.total_cost)
            else:
                row["adjusted"] += amount

        return list(report.values())

    # ==================== HELPERS ====================

    @classmethod
    def _active_batches(cls, ingredient_id: int = None):
        queryset = IngredientBatch.objects.filter(
            status=IngredientBatch.Status.ACTIVE,
            quantity_remaining__gt=0,
        )
        if ingredient_id:
            queryset = queryset.filter(ingredient_id=ingredient_id)
        return queryset

    @classmethod
    def _filter_dates(cls, queryset, date_from, date_to):
        date_from = to_date(date_from, "date_from")
        date_to = to_date(date_to, "date_to")
        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)
        return queryset
