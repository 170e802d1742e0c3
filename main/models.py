"""
Retail ERP sales models: restaurant products and orders, salon services and appointments.
Stock consumption is described by recipes (products) and requirements (services).
"""

import uuid
from django.db import models

from stock.models import TenantModel, Ingredient, Sector, Unit


# =============================================================================
# RESTAURANT
# =============================================================================

class Product(TenantModel):
    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=100)
    description = models.TextField(null=True, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    # Preparation sector: first place its ingredients are taken from
    sector = models.ForeignKey(
        Sector,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name


class Recipe(models.Model):
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="recipes"
    )
    ingredient = models.ForeignKey(
        Ingredient,
        on_delete=models.PROTECT,
        related_name="recipe_lines"
    )
    quantity = models.DecimalField(max_digits=15, decimal_places=4)
    # Empty means the ingredient's own unit
    unit = models.CharField(max_length=5, choices=Unit.choices, null=True, blank=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["product", "ingredient"], name="uniq_recipe_line"),
        ]

    def __str__(self):
        return f"{self.product.name}: {self.quantity} {self.unit or self.ingredient.unit} {self.ingredient.name}"


class Order(TenantModel):
    class Status(models.TextChoices):
        OPEN = "OPEN", "Open"
        PREPARING = "PREPARING", "Preparing"
        READY = "READY", "Ready"
        DELIVERED = "DELIVERED", "Delivered"
        CANCELLED = "CANCELLED", "Cancelled"

    class OrderType(models.TextChoices):
        COUNTER = "COUNTER", "Counter"
        HALL = "HALL", "Hall (Dine-in)"
        DELIVERY = "DELIVERY", "Delivery"
        PICKUP = "PICKUP", "Pickup"

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    # Sequential per tenant, shown on tickets and in movement reasons
    order_number = models.PositiveIntegerField()

    order_type = models.CharField(
        max_length=10,
        choices=OrderType.choices,
        default=OrderType.COUNTER
    )

    status = models.CharField(
        max_length=15,
        choices=Status.choices,
        default=Status.OPEN
    )

    customer_name = models.CharField(max_length=100, null=True, blank=True)
    phone_number = models.CharField(max_length=20, null=True, blank=True)
    description = models.TextField(null=True, blank=True)

    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["tenant_id", "order_number"], name="uniq_order_number"),
        ]

    def __str__(self):
        return f"Order #{self.order_number} - {self.order_type} - {self.status}"


class OrderItem(models.Model):
    order = models.ForeignKey(
        Order,
        related_name="items",
        on_delete=models.CASCADE
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT
    )
    quantity = models.PositiveIntegerField()
    detail = models.TextField(null=True, blank=True)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2
    )

    def __str__(self):
        return f"{self.product.name} x {self.quantity}"


# =============================================================================
# SALON
# =============================================================================

class SalonService(TenantModel):
    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=100)
    description = models.TextField(null=True, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    duration_minutes = models.PositiveIntegerField(default=30)
    sector = models.ForeignKey(
        Sector,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="salon_services"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name


class ServiceRequirement(models.Model):
    service = models.ForeignKey(
        SalonService,
        on_delete=models.CASCADE,
        related_name="requirements"
    )
    ingredient = models.ForeignKey(
        Ingredient,
        on_delete=models.PROTECT,
        related_name="requirement_lines"
    )
    quantity = models.DecimalField(max_digits=15, decimal_places=4)
    unit = models.CharField(max_length=5, choices=Unit.choices, null=True, blank=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["service", "ingredient"], name="uniq_service_requirement"),
        ]

    def __str__(self):
        return f"{self.service.name}: {self.quantity} {self.unit or self.ingredient.unit} {self.ingredient.name}"


class Appointment(TenantModel):
    class Status(models.TextChoices):
        SCHEDULED = "SCHEDULED", "Scheduled"
        CONFIRMED = "CONFIRMED", "Confirmed"
        COMPLETED = "COMPLETED", "Completed"
        CANCELLED = "CANCELLED", "Cancelled"

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    service = models.ForeignKey(
        SalonService,
        on_delete=models.PROTECT,
        related_name="appointments"
    )
    client_name = models.CharField(max_length=100)
    phone_number = models.CharField(max_length=20, null=True, blank=True)
    scheduled_at = models.DateTimeField()
    status = models.CharField(
        max_length=15,
        choices=Status.choices,
        default=Status.SCHEDULED
    )
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    notes = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["scheduled_at"]

    def __str__(self):
        return f"Appointment #{self.id} - {self.service.name} - {self.status}"
