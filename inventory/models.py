from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


QUANTITY_FIELD = dict(max_digits=15, decimal_places=4)


class Supplier(models.Model):
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=50, blank=True, default="")
    rating = models.PositiveSmallIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Ingredient(models.Model):
    """
    Canonical ingredient definition.

    current_stock_quantity is a cache of the remaining quantity across the
    ingredient's active batches. Only the services recompute it.
    """

    name = models.CharField(max_length=200, unique=True)
    unit = models.CharField(max_length=20, default="pcs")
    reorder_level = models.DecimalField(**QUANTITY_FIELD, default=0)
    cost_per_unit = models.DecimalField(**QUANTITY_FIELD, default=0)
    current_stock_quantity = models.DecimalField(**QUANTITY_FIELD, default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.unit})"


class IngredientBatch(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        DEPLETED = "depleted", "Depleted"
        EXPIRED = "expired", "Expired"
        DISPOSED = "disposed", "Disposed"

    ingredient = models.ForeignKey(
        Ingredient, on_delete=models.PROTECT, related_name="batches"
    )
    batch_number = models.CharField(max_length=100)
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="batches",
    )

    quantity_purchased = models.DecimalField(**QUANTITY_FIELD)
    quantity_remaining = models.DecimalField(**QUANTITY_FIELD)
    cost_per_unit = models.DecimalField(**QUANTITY_FIELD, default=0)

    purchase_date = models.DateField()
    manufacturing_date = models.DateField(null=True, blank=True)
    expiry_date = models.DateField(null=True, blank=True, db_index=True)

    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.ACTIVE
    )
    notes = models.TextField(blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ingredient_batches",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [("ingredient", "batch_number")]
        verbose_name_plural = "ingredient batches"
        indexes = [
            models.Index(fields=["ingredient", "status"], name="batch_ingredient_status_idx"),
        ]

    def __str__(self):
        return f"Batch {self.batch_number} - {self.ingredient.name}"


class WasteRecord(models.Model):
    class Reason(models.TextChoices):
        EXPIRED = "Expired", "Expired"
        SPOILED = "Spoiled", "Spoiled / Contaminated"
        BURNT = "Burnt", "Burnt"
        RETURNED = "Returned", "Returned"
        PREPARATION_ERROR = "Preparation Error", "Preparation Error"
        LOST = "Lost", "Lost"
        THEFT = "Theft", "Theft"
        DAMAGED = "Damaged", "Damaged"
        OTHER = "Other", "Other"

    ingredient = models.ForeignKey(
        Ingredient, on_delete=models.PROTECT, related_name="waste_records"
    )
    # Set only when the waste was logged against an explicit batch
    batch = models.ForeignKey(
        IngredientBatch,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="waste_records",
    )
    quantity = models.DecimalField(**QUANTITY_FIELD)
    reason = models.CharField(max_length=30, choices=Reason.choices)
    notes = models.TextField(blank=True, default="")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ingredient_waste_records",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"Waste {self.quantity} {self.ingredient.unit} of {self.ingredient.name} ({self.reason})"


class StockMovement(models.Model):
    """
    Append-only ledger row. One row per batch touched by a stock change.
    """

    class MovementType(models.TextChoices):
        PURCHASE = "Purchase", "Purchase"
        CONSUMPTION = "Consumption", "Consumption"
        WASTE = "Waste", "Waste"
        ADJUSTMENT = "Adjustment", "Adjustment"

    ingredient = models.ForeignKey(
        Ingredient, on_delete=models.PROTECT, related_name="movements"
    )
    # Null only for rows written before batch tracking existed
    batch = models.ForeignKey(
        IngredientBatch,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="movements",
    )
    movement_type = models.CharField(
        max_length=20, choices=MovementType.choices, db_index=True
    )
    change_amount = models.DecimalField(**QUANTITY_FIELD)
    quantity_before = models.DecimalField(**QUANTITY_FIELD, default=0)
    quantity_after = models.DecimalField(**QUANTITY_FIELD, default=0)
    cost_per_unit = models.DecimalField(**QUANTITY_FIELD, default=0)

    reason = models.CharField(max_length=30, blank=True, default="")
    reference_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    waste_record = models.ForeignKey(
        WasteRecord,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="movements",
    )
    notes = models.TextField(blank=True, default="")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ingredient_movements",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["ingredient", "created_at"], name="movement_ingredient_date_idx"),
            models.Index(fields=["movement_type", "created_at"], name="movement_type_date_idx"),
        ]

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ValidationError("Stock movements are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Stock movements are immutable")

    @property
    def total_cost(self):
        return abs(self.change_amount) * self.cost_per_unit

    def __str__(self):
        return f"{self.get_movement_type_display()} {self.change_amount:+} {self.ingredient.name}"


class InventorySettings(models.Model):
    """
    Singleton settings table. Use InventorySettings.load() to get the instance.
    """

    class ConsumptionStrategy(models.TextChoices):
        FIFO = "FIFO", "First In, First Out"
        FEFO = "FEFO", "First Expired, First Out"

    consumption_strategy = models.CharField(
        max_length=10,
        choices=ConsumptionStrategy.choices,
        default=ConsumptionStrategy.FEFO,
    )
    auto_expire_batches = models.BooleanField(default=True)
    expiry_warning_days = models.PositiveIntegerField(default=7)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "inventory settings"
        verbose_name_plural = "inventory settings"

    def save(self, *args, **kwargs):
        # Enforce singleton: always use pk=1
        self.pk = 1
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj

    def __str__(self):
        return "Inventory Settings"
