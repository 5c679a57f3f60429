"""
Inventory Services - Ingredient batch tracking business logic

Usage:
    from inventory.services import StockMovementService, InventoryReportService

    # Receive stock
    batch = StockMovementService.record_purchase(ingredient_id=1, quantity=10, cost_per_unit=250)

    # Consume for a sale
    StockMovementService.record_consumption(ingredient_id=1, quantity=2, reference_id=1042)

    # Value what is on hand
    InventoryReportService.get_inventory_valuation()
"""

# Base utilities
from inventory.services.base_service import (
    ServiceError,
    ValidationError,
    NotFoundError,
    InsufficientStockError,
    InsufficientQuantityError,
    ConcurrencyConflictError,
    round_decimal,
    to_quantity,
    atomic_operation,
    retry_on_conflict,
    BaseService,
)
# Settings
from .settings_service import InventorySettingsService

# Registry & ledger
from .ingredient_service import IngredientService
from .batch_service import IngredientBatchService

# Stock operations
from .allocation_service import BatchAllocationService, AllocationLine, AllocationResult
from .movement_service import StockMovementService, ConsumptionResult, WasteResult

# Reports
from .report_service import InventoryReportService, ExpiringBatch


__all__ = [
    # Base
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "InsufficientStockError",
    "InsufficientQuantityError",
    "ConcurrencyConflictError",
    "round_decimal",
    "to_quantity",
    "atomic_operation",
    "retry_on_conflict",
    "BaseService",

    # Settings
    "InventorySettingsService",

    # Registry & ledger
    "IngredientService",
    "IngredientBatchService",

    # Stock operations
    "BatchAllocationService",
    "AllocationLine",
    "AllocationResult",
    "StockMovementService",
    "ConsumptionResult",
    "WasteResult",

    # Reports
    "InventoryReportService",
    "ExpiringBatch",
]
