"""
Stock Movement Service - Single entry point for every stock change

Usage:
    from inventory.services import StockMovementService

    batch = StockMovementService.record_purchase(ingredient_id=1, quantity=10, cost_per_unit=2)
    result = StockMovementService.record_consumption(ingredient_id=1, quantity=3, reference_id="ORD-7")
    StockMovementService.record_waste(ingredient_id=1, quantity=1, reason="Spoiled")
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Iterable, Tuple, Optional
from decimal import Decimal
from datetime import date

from django.utils import timezone

from inventory.models import (
    Ingredient, IngredientBatch, StockMovement, WasteRecord
)
from inventory.services.base_service import (
    ValidationError, atomic_operation, to_quantity, to_date, ZERO
)
from inventory.services.allocation_service import (
    BatchAllocationService, AllocationLine, AllocationResult
)
from inventory.services.batch_service import IngredientBatchService
from inventory.services.ingredient_service import IngredientService
from inventory.services.settings_service import InventorySettingsService

logger = logging.getLogger(__name__)


@dataclass
class ConsumptionResult:
    ingredient_id: int
    allocation: AllocationResult
    movement_ids: List[int] = field(default_factory=list)

    @property
    def lines(self) -> List[AllocationLine]:
        return self.allocation.lines

    @property
    def total_cost(self) -> Decimal:
        return self.allocation.total_cost

    @property
    def weighted_unit_cost(self) -> Decimal:
        return self.allocation.weighted_unit_cost


@dataclass
class WasteResult:
    waste_record_id: int
    ingredient_id: int
    reason: str
    lines: List[AllocationLine] = field(default_factory=list)
    movement_ids: List[int] = field(default_factory=list)

    @property
    def quantity(self) -> Decimal:
        return sum((line.quantity for line in self.lines), ZERO)

    @property
    def total_cost(self) -> Decimal:
        return sum((line.cost for line in self.lines), ZERO)


class StockMovementService:
    """Record purchases, consumption, waste, adjustments and the expiry sweep"""

    MovementType = StockMovement.MovementType

    # ==================== PURCHASE ====================

    @classmethod
    @atomic_operation
    def record_purchase(cls,
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
        """Receive stock as a new batch and write its Purchase movement"""
        ingredient = IngredientService.get_for_update(ingredient_id)

        batch = IngredientBatchService.create_batch(
            ingredient_id=ingredient.id,
            quantity=quantity,
            cost_per_unit=cost_per_unit,
            purchase_date=purchase_date,
            expiry_date=expiry_date,
            supplier_id=supplier_id,
            manufacturing_date=manufacturing_date,
            batch_number=batch_number,
            notes=notes,
            user_id=user_id,
        )

        cls._write_movement(
            ingredient=ingredient,
            batch=batch,
            movement_type=cls.MovementType.PURCHASE,
            change_amount=batch.quantity_purchased,
            quantity_before=ZERO,
            quantity_after=batch.quantity_remaining,
            cost_per_unit=batch.cost_per_unit,
            notes=notes,
            user_id=user_id,
        )
        IngredientService.recompute_stock(ingredient)

        logger.info(
            "Purchase recorded: %s %s of %s in batch %s @ %s",
            batch.quantity_purchased, ingredient.unit, ingredient.name,
            batch.batch_number, batch.cost_per_unit
        )
        return batch

    # ==================== CONSUMPTION ====================

    @classmethod
    @atomic_operation
    def record_consumption(cls,
                           ingredient_id: int,
                           quantity: Decimal,
                           reference_id: Any = None,
                           notes: str = "",
                           user_id: int = None,
                           strategy: str = None) -> ConsumptionResult:
        """
        Deduct quantity from the ingredient's batches by consumption strategy.

        One Consumption movement is written per batch touched. Raises
        InsufficientStockError, leaving every batch unchanged, if the active
        batches cannot cover the full quantity.
        """
        return cls._consume(ingredient_id, quantity, reference_id, notes, user_id, strategy)

    @classmethod
    @atomic_operation
    def record_order_consumption(cls,
                                 order_id: Any,
                                 items: Iterable[Tuple[int, Decimal]],
                                 user_id: int = None,
                                 strategy: str = None) -> List[ConsumptionResult]:
        """
        Consume every ingredient of an order as one unit.

        Quantities of the same ingredient are merged and ingredients are
        locked in ascending id order. A shortfall on any ingredient rolls
        back the whole order.
        """
        merged: Dict[int, Decimal] = {}
        for ingredient_id, quantity in items:
            quantity = to_quantity(quantity, "quantity")
            if quantity < 0:
                raise ValidationError("Quantity cannot be negative", "quantity")
            try:
                ingredient_id = int(ingredient_id)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid ingredient id: {ingredient_id!r}", "ingredient_id")
            merged[ingredient_id] = merged.get(ingredient_id, ZERO) + quantity

        results = []
        for ingredient_id in sorted(merged):
            results.append(cls._consume(
                ingredient_id, merged[ingredient_id], order_id,
                f"Order #{order_id}", user_id, strategy
            ))

        logger.info("Order %s consumption recorded for %s ingredients", order_id, len(results))
        return results

    @classmethod
    def _consume(cls, ingredient_id, quantity, reference_id, notes, user_id, strategy) -> ConsumptionResult:
        allocation = BatchAllocationService.allocate(ingredient_id, quantity, strategy=strategy)
        result = ConsumptionResult(ingredient_id=ingredient_id, allocation=allocation)

        if not allocation.lines:
            return result

        ingredient = Ingredient.objects.get(id=ingredient_id)
        for line in allocation.lines:
            movement = cls._write_movement(
                ingredient=ingredient,
                batch_id=line.batch_id,
                movement_type=cls.MovementType.CONSUMPTION,
                change_amount=-line.quantity,
                quantity_before=line.quantity_before,
                quantity_after=line.quantity_after,
                cost_per_unit=line.cost_per_unit,
                reference_id=reference_id,
                notes=notes,
                user_id=user_id,
            )
            result.movement_ids.append(movement.id)

        logger.info(
            "Consumption recorded: %s %s of %s from %s batch(es), cost %s (%s)",
            allocation.requested, ingredient.unit, ingredient.name,
            len(allocation.lines), allocation.total_cost, allocation.strategy
        )
        return result

    # ==================== WASTE ====================

    @classmethod
    @atomic_operation
    def record_waste(cls,
                     ingredient_id: int,
                     quantity: Decimal,
                     reason: str,
                     notes: str = "",
                     batch_id: int = None,
                     user_id: int = None,
                     strategy: str = None) -> WasteResult:
        """
        Log waste and deduct it from stock.

        With batch_id the whole quantity comes out of that batch; without it
        the batches are walked by consumption strategy like a sale.
        """
        if reason not in WasteRecord.Reason.values:
            raise ValidationError(f"Invalid waste reason. Valid: {WasteRecord.Reason.values}", "reason")

        quantity = to_quantity(quantity, "quantity")
        if quantity <= 0:
            raise ValidationError("Waste quantity must be positive", "quantity")

        if batch_id:
            ingredient = IngredientService.get_for_update(ingredient_id)
            lines = [cls._waste_from_batch(ingredient, batch_id, quantity)]
        else:
            allocation = BatchAllocationService.allocate(ingredient_id, quantity, strategy=strategy)
            ingredient = Ingredient.objects.get(id=ingredient_id)
            lines = allocation.lines

        waste_record = WasteRecord.objects.create(
            ingredient=ingredient,
            batch_id=batch_id or None,
            quantity=quantity,
            reason=reason,
            notes=notes or "",
            user_id=user_id,
        )

        result = WasteResult(
            waste_record_id=waste_record.id,
            ingredient_id=ingredient.id,
            reason=reason,
            lines=lines,
        )
        for line in lines:
            movement = cls._write_movement(
                ingredient=ingredient,
                batch_id=line.batch_id,
                movement_type=cls.MovementType.WASTE,
                change_amount=-line.quantity,
                quantity_before=line.quantity_before,
                quantity_after=line.quantity_after,
                cost_per_unit=line.cost_per_unit,
                reason=reason,
                waste_record=waste_record,
                notes=notes,
                user_id=user_id,
            )
            result.movement_ids.append(movement.id)

        logger.info(
            "Waste recorded: %s %s of %s (%s), cost %s",
            quantity, ingredient.unit, ingredient.name, reason, result.total_cost
        )
        return result

    @classmethod
    def _waste_from_batch(cls, ingredient: Ingredient, batch_id: int, quantity: Decimal) -> AllocationLine:
        batch = IngredientBatchService.get_for_update(batch_id)

        if batch.ingredient_id != ingredient.id:
            raise ValidationError(
                f"Batch {batch.batch_number} does not belong to {ingredient.name}", "batch_id"
            )
        if batch.status == IngredientBatch.Status.DISPOSED:
            raise ValidationError(f"Batch {batch.batch_number} is disposed", "batch_id")

        before = batch.quantity_remaining
        updated = IngredientBatchService.adjust_remaining(batch.id, -quantity)
        IngredientService.recompute_stock(ingredient)

        return AllocationLine(
            batch_id=batch.id,
            batch_number=batch.batch_number,
            quantity=quantity,
            cost_per_unit=batch.cost_per_unit,
            quantity_before=before,
            quantity_after=updated.quantity_remaining,
        )

    # ==================== CORRECTIONS ====================

    @classmethod
    @atomic_operation
    def record_adjustment(cls, batch_id: int, delta: Decimal, notes: str = "", user_id: int = None) -> StockMovement:
        """Corrective change to one batch, e.g. after a physical count"""
        delta = to_quantity(delta, "delta")
        if delta == ZERO:
            raise ValidationError("Adjustment cannot be zero", "delta")

        batch = IngredientBatchService.get(batch_id)
        ingredient = IngredientService.get_for_update(batch.ingredient_id)

        before = IngredientBatchService.get_for_update(batch_id).quantity_remaining
        batch = IngredientBatchService.adjust_remaining(batch_id, delta)

        movement = cls._write_movement(
            ingredient=ingredient,
            batch=batch,
            movement_type=cls.MovementType.ADJUSTMENT,
            change_amount=delta,
            quantity_before=before,
            quantity_after=batch.quantity_remaining,
            cost_per_unit=batch.cost_per_unit,
            notes=notes,
            user_id=user_id,
        )
        IngredientService.recompute_stock(ingredient)

        logger.info("Adjustment recorded: batch %s by %s, now %s", batch.batch_number, delta, batch.quantity_remaining)
        return movement

    @classmethod
    @atomic_operation
    def dispose_batch(cls, batch_id: int, notes: str = "", user_id: int = None) -> IngredientBatch:
        """Take a batch out of service for good. Quantity is left as it was."""
        batch = IngredientBatchService.set_status(batch_id, IngredientBatch.Status.DISPOSED, notes=notes)
        logger.info("Batch %s disposed by user %s", batch.batch_number, user_id)
        return batch

    # ==================== EXPIRY SWEEP ====================

    @classmethod
    @atomic_operation
    def expire_batches(cls, as_of: date = None, force: bool = False) -> List[int]:
        """
        Mark active batches whose expiry date is before as_of as expired.

        Does nothing unless auto_expire_batches is enabled or force is set.
        A batch expiring on as_of itself is still usable that day. Running
        the sweep again for the same date changes nothing.
        """
        if not force and not InventorySettingsService.is_auto_expire_enabled():
            logger.info("Expiry sweep skipped: auto_expire_batches is disabled")
            return []

        as_of = to_date(as_of, "as_of") or timezone.localdate()

        ingredient_ids = sorted(set(
            IngredientBatch.objects.filter(
                status=IngredientBatch.Status.ACTIVE,
                expiry_date__lt=as_of,
            ).values_list("ingredient_id", flat=True)
        ))

        expired_ids = []
        for ingredient_id in ingredient_ids:
            ingredient = IngredientService.get_for_update(ingredient_id)
            batches = list(
                IngredientBatch.objects.select_for_update().filter(
                    ingredient_id=ingredient_id,
                    status=IngredientBatch.Status.ACTIVE,
                    expiry_date__lt=as_of,
                ).order_by("id")
            )
            for batch in batches:
                batch.status = IngredientBatch.Status.EXPIRED
                batch.save(update_fields=["status", "updated_at"])
                expired_ids.append(batch.id)

            IngredientService.recompute_stock(ingredient)
            if batches:
                logger.info(
                    "Expired %s batch(es) of %s as of %s",
                    len(batches), ingredient.name, as_of.isoformat()
                )

        return expired_ids

    # ==================== AUDIT ====================

    @classmethod
    def reconcile(cls, ingredient_id: int = None) -> List[Dict[str, Any]]:
        """
        Check the ledger against itself. Returns one entry per discrepancy,
        an empty list when every cache and batch agrees with the movements.
        """
        ingredients = Ingredient.objects.order_by("id")
        if ingredient_id:
            ingredients = ingredients.filter(id=ingredient_id)

        issues = []
        for ingredient in ingredients:
            actual = IngredientService.active_stock(ingredient.id)
            if ingredient.current_stock_quantity != actual:
                issues.append({
                    "type": "stock_cache",
                    "ingredient_id": ingredient.id,
                    "ingredient": ingredient.name,
                    "cached": ingredient.current_stock_quantity,
                    "actual": actual,
                })

            for batch in ingredient.batches.order_by("id"):
                issues.extend(cls._check_batch(ingredient, batch))

        return issues

    @classmethod
    def _check_batch(cls, ingredient: Ingredient, batch: IngredientBatch) -> List[Dict[str, Any]]:
        issues = []
        changes = batch.movements.exclude(
            movement_type=cls.MovementType.PURCHASE
        ).values_list("change_amount", flat=True)
        expected = batch.quantity_purchased + sum(changes, ZERO)

        if expected != batch.quantity_remaining:
            issues.append({
                "type": "movement_mismatch",
                "ingredient_id": ingredient.id,
                "batch_id": batch.id,
                "batch_number": batch.batch_number,
                "expected": expected,
                "remaining": batch.quantity_remaining,
            })

        if batch.quantity_remaining < 0 or batch.quantity_remaining > batch.quantity_purchased:
            issues.append({
                "type": "out_of_range",
                "ingredient_id": ingredient.id,
                "batch_id": batch.id,
                "batch_number": batch.batch_number,
                "remaining": batch.quantity_remaining,
                "purchased": batch.quantity_purchased,
            })

        return issues

    # ==================== HELPERS ====================

    @classmethod
    def _write_movement(cls,
                        ingredient: Ingredient,
                        movement_type: str,
                        change_amount: Decimal,
                        quantity_before: Decimal,
                        quantity_after: Decimal,
                        cost_per_unit: Decimal,
                        batch: IngredientBatch = None,
                        batch_id: int = None,
                        reason: str = "",
                        reference_id: Any = None,
                        waste_record: Optional[WasteRecord] = None,
                        notes: str = "",
                        user_id: int = None) -> StockMovement:
        return StockMovement.objects.create(
            ingredient=ingredient,
            batch_id=batch.id if batch else batch_id,
            movement_type=movement_type,
            change_amount=change_amount,
            quantity_before=quantity_before,
            quantity_after=quantity_after,
            cost_per_unit=cost_per_unit,
            reason=reason,
            reference_id="" if reference_id is None else str(reference_id),
            waste_record=waste_record,
            notes=notes or "",
            user_id=user_id,
        )
