"""
Batch Allocation Service - Deduct stock from batches in FIFO/FEFO order
"""
import logging
from dataclasses import dataclass, field
from typing import List
from decimal import Decimal

from inventory.services.base_service import (
    ValidationError, InsufficientStockError, to_quantity, round_decimal, ZERO
)
from inventory.services.batch_service import IngredientBatchService
from inventory.services.ingredient_service import IngredientService
from inventory.services.settings_service import InventorySettingsService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationLine:
    batch_id: int
    batch_number: str
    quantity: Decimal
    cost_per_unit: Decimal
    quantity_before: Decimal
    quantity_after: Decimal

    @property
    def cost(self) -> Decimal:
        return round_decimal(self.quantity * self.cost_per_unit)


@dataclass
class AllocationResult:
    ingredient_id: int
    strategy: str
    requested: Decimal
    lines: List[AllocationLine] = field(default_factory=list)

    @property
    def allocated(self) -> Decimal:
        return sum((line.quantity for line in self.lines), ZERO)

    @property
    def total_cost(self) -> Decimal:
        return sum((line.cost for line in self.lines), ZERO)

    @property
    def weighted_unit_cost(self) -> Decimal:
        allocated = self.allocated
        if not allocated:
            return ZERO
        return round_decimal(self.total_cost / allocated)


class BatchAllocationService:
    """
    Walks an ingredient's active batches in strategy order and deducts the
    requested quantity. Must run inside a transaction; the recorder wraps
    every call.
    """

    @classmethod
    def allocate(cls, ingredient_id: int, quantity: Decimal, strategy: str = None) -> AllocationResult:
        quantity = to_quantity(quantity, "quantity")
        if quantity < 0:
            raise ValidationError("Quantity cannot be negative", "quantity")

        strategy = strategy or InventorySettingsService.get_consumption_strategy()
        InventorySettingsService.validate_strategy(strategy)

        result = AllocationResult(ingredient_id=ingredient_id, strategy=str(strategy), requested=quantity)
        if quantity == ZERO:
            IngredientService.get(ingredient_id)
            return result

        ingredient = IngredientService.get_for_update(ingredient_id)
        batches = IngredientBatchService.get_active_batches_for_ingredient(
            ingredient.id, order=strategy, for_update=True
        )

        plan = cls._plan(batches, quantity)
        planned = sum((take for _, take in plan), ZERO)

        if planned < quantity:
            logger.warning(
                "Allocation rejected for %s: required %s, available %s (%s)",
                ingredient.name, quantity, planned, strategy
            )
            raise InsufficientStockError(ingredient.name, quantity, planned)

        for batch, take in plan:
            before = batch.quantity_remaining
            updated = IngredientBatchService.adjust_remaining(batch.id, -take)
            result.lines.append(AllocationLine(
                batch_id=batch.id,
                batch_number=batch.batch_number,
                quantity=take,
                cost_per_unit=batch.cost_per_unit,
                quantity_before=before,
                quantity_after=updated.quantity_remaining,
            ))

        IngredientService.recompute_stock(ingredient)
        return result

    @classmethod
    def _plan(cls, batches, quantity: Decimal):
        """Pair each batch with the quantity to take from it"""
        plan = []
        needed = quantity

        for batch in batches:
            if needed <= 0:
                break
            take = min(needed, batch.quantity_remaining)
            if take <= 0:
                continue
            plan.append((batch, take))
            needed -= take

        return plan
