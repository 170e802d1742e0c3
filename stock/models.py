import uuid as uuid_lib

from django.db import models


class Unit(models.TextChoices):
    KILOGRAM = "kg", "Kilogram"
    GRAM = "g", "Gram"
    LITER = "L", "Liter"
    MILLILITER = "ml", "Milliliter"
    UNIT = "un", "Unit"


class TenantQuerySet(models.QuerySet):
    def for_tenant(self, tenant_id):
        return self.filter(tenant_id=tenant_id)


class TenantModel(models.Model):
    """Every row belongs to exactly one tenant and is only read through it."""

    tenant_id = models.CharField(max_length=50, db_index=True)

    objects = TenantQuerySet.as_manager()

    class Meta:
        abstract = True


class StockCategory(TenantModel):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=100)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "stock categories"
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "name"], name="uniq_stock_category_name"
            ),
        ]

    def __str__(self):
        return self.name


class Ingredient(TenantModel):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=200)
    unit = models.CharField(max_length=5, choices=Unit.choices, default=Unit.UNIT)
    cost_price = models.DecimalField(max_digits=15, decimal_places=4, default=0)
    min_stock = models.DecimalField(max_digits=15, decimal_places=4, default=0)
    category = models.ForeignKey(
        StockCategory,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ingredients",
    )
    # Ingredients are deactivated, never deleted, so the ledger stays valid
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.unit})"


class Sector(TenantModel):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, default="")
    is_central = models.BooleanField(
        default=False,
        help_text="Fallback sector for deductions and for deleted sectors",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-is_central", "name"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "name"], name="uniq_sector_name"
            ),
            models.UniqueConstraint(
                fields=["tenant_id"],
                condition=models.Q(is_central=True),
                name="uniq_central_sector",
            ),
        ]

    def __str__(self):
        return self.name


class StockBalance(TenantModel):
    """
    Current quantity of one ingredient in one sector.
    Signed: a negative quantity is an overdraft left by a forced sale.
    """

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    ingredient = models.ForeignKey(
        Ingredient, on_delete=models.CASCADE, related_name="balances"
    )
    sector = models.ForeignKey(
        Sector, on_delete=models.CASCADE, related_name="balances"
    )
    quantity = models.DecimalField(max_digits=15, decimal_places=4, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["ingredient", "sector"], name="uniq_balance_ingredient_sector"
            ),
        ]

    def __str__(self):
        return f"{self.ingredient.name} @ {self.sector.name}: {self.quantity}"


class ImmutableRecordError(Exception):
    pass


class StockMovement(TenantModel):
    class MovementType(models.TextChoices):
        ENTRY = "ENTRY", "Entry"
        EXIT = "EXIT", "Exit"
        TRANSFER = "TRANSFER", "Transfer"
        ADJUSTMENT = "ADJUSTMENT", "Adjustment"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    ingredient = models.ForeignKey(
        Ingredient, on_delete=models.PROTECT, related_name="movements"
    )
    from_sector = models.ForeignKey(
        Sector,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="outgoing_movements",
    )
    to_sector = models.ForeignKey(
        Sector,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="incoming_movements",
    )
    movement_type = models.CharField(
        max_length=20, choices=MovementType.choices, db_index=True
    )
    # Always a positive magnitude; direction comes from type and sector fields
    quantity = models.DecimalField(max_digits=15, decimal_places=4)
    reason = models.CharField(max_length=255, blank=True, default="")

    # Source document (order or appointment) for sale exits and reversals
    reference_type = models.CharField(max_length=20, blank=True, default="")
    reference_id = models.PositiveBigIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["tenant_id", "ingredient", "created_at"]),
            models.Index(fields=["reference_type", "reference_id"]),
        ]

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ImmutableRecordError("Stock movements are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError("Stock movements are append-only")

    def __str__(self):
        return f"{self.get_movement_type_display()} {self.quantity} {self.ingredient.name}"


class StockDeduction(TenantModel):
    """
    One row per order or appointment whose stock was deducted.
    The unique constraint is the idempotency guard.
    """

    class ReferenceType(models.TextChoices):
        ORDER = "ORDER", "Order"
        APPOINTMENT = "APPOINTMENT", "Appointment"

    reference_type = models.CharField(max_length=20, choices=ReferenceType.choices)
    reference_id = models.PositiveBigIntegerField()
    reference_label = models.CharField(max_length=100, blank=True, default="")
    reversed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "reference_type", "reference_id"],
                name="uniq_stock_deduction_reference",
            ),
        ]

    def __str__(self):
        return f"Deduction {self.reference_type}#{self.reference_id}"
