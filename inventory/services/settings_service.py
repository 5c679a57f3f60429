import logging
from typing import Dict, Any

from django.db import transaction

from inventory.models import InventorySettings
from inventory.services.base_service import BaseService, ValidationError

logger = logging.getLogger(__name__)


class InventorySettingsService(BaseService):
    model = InventorySettings

    @classmethod
    def load(cls) -> InventorySettings:
        return InventorySettings.load()

    @classmethod
    def get_consumption_strategy(cls) -> str:
        """Strategy used by allocations that do not pass one explicitly"""
        return cls.load().consumption_strategy

    @classmethod
    def is_auto_expire_enabled(cls) -> bool:
        return cls.load().auto_expire_batches

    @classmethod
    def validate_strategy(cls, strategy: str) -> str:
        valid_strategies = [c[0] for c in InventorySettings.ConsumptionStrategy.choices]
        if strategy not in valid_strategies:
            raise ValidationError(
                f"Invalid consumption strategy. Valid: {valid_strategies}", "consumption_strategy"
            )
        return strategy

    @classmethod
    def get_all(cls) -> Dict[str, Any]:
        settings = cls.load()

        return {
            "consumption_strategy": settings.consumption_strategy,
            "auto_expire_batches": settings.auto_expire_batches,
            "expiry_warning_days": settings.expiry_warning_days,
        }

    @classmethod
    @transaction.atomic
    def update(cls, **kwargs) -> Dict[str, Any]:
        settings = cls.load()
        valid_fields = {"consumption_strategy", "auto_expire_batches", "expiry_warning_days"}

        unknown = set(kwargs) - valid_fields
        if unknown:
            raise ValidationError(f"Unknown settings: {sorted(unknown)}", sorted(unknown)[0])

        if "consumption_strategy" in kwargs:
            cls.validate_strategy(kwargs["consumption_strategy"])

        if "expiry_warning_days" in kwargs:
            try:
                days = int(kwargs["expiry_warning_days"])
            except (TypeError, ValueError):
                raise ValidationError("Expiry warning days must be a whole number", "expiry_warning_days")
            if days < 0:
                raise ValidationError("Expiry warning days cannot be negative", "expiry_warning_days")
            kwargs["expiry_warning_days"] = days

        if "auto_expire_batches" in kwargs:
            kwargs["auto_expire_batches"] = bool(kwargs["auto_expire_batches"])

        for field, value in kwargs.items():
            setattr(settings, field, value)

        if kwargs:
            settings.save()
            logger.info("Inventory settings updated: %s", kwargs)

        return cls.get_all()
