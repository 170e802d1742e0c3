from decimal import Decimal
from django.db.models import Max

from stock.models import Sector, Ingredient, StockBalance
from main.models import Product, Recipe, SalonService, ServiceRequirement, Order, OrderItem

TENANT = "restaurant"


def make_sector(name, is_central=False, tenant_id=TENANT):
    return Sector.objects.create(tenant_id=tenant_id, name=name, is_central=is_central)


def make_ingredient(name, unit="kg", min_stock=0, tenant_id=TENANT):
    return Ingredient.objects.create(
        tenant_id=tenant_id, name=name, unit=unit, min_stock=Decimal(str(min_stock))
    )


def set_balance(ingredient, sector, quantity):
    balance, _ = StockBalance.objects.update_or_create(
        ingredient=ingredient,
        sector=sector,
        defaults={"tenant_id": ingredient.tenant_id, "quantity": Decimal(str(quantity))},
    )
    return balance


def balance_of(ingredient, sector):
    balance = StockBalance.objects.filter(ingredient=ingredient, sector=sector).first()
    return balance.quantity if balance else None


def make_product(name, recipe=(), sector=None, price="10.00", tenant_id=TENANT):
    """recipe: iterable of (ingredient, quantity) or (ingredient, quantity, unit)."""
    product = Product.objects.create(
        tenant_id=tenant_id, name=name, price=Decimal(price), sector=sector
    )
    for line in recipe:
        ingredient, quantity = line[0], line[1]
        unit = line[2] if len(line) > 2 else None
        Recipe.objects.create(
            product=product, ingredient=ingredient, quantity=Decimal(str(quantity)), unit=unit
        )
    return product


def make_service(name, requirements=(), sector=None, price="50.00", tenant_id=TENANT):
    service = SalonService.objects.create(
        tenant_id=tenant_id, name=name, price=Decimal(price), sector=sector
    )
    for line in requirements:
        ingredient, quantity = line[0], line[1]
        unit = line[2] if len(line) > 2 else None
        ServiceRequirement.objects.create(
            service=service, ingredient=ingredient, quantity=Decimal(str(quantity)), unit=unit
        )
    return service


def make_order(items, tenant_id=TENANT):
    """Create an order row without touching stock. items: iterable of (product, quantity)."""
    last = Order.objects.filter(tenant_id=tenant_id).aggregate(n=Max("order_number"))["n"] or 0
    order = Order.objects.create(tenant_id=tenant_id, order_number=last + 1)
    for product, quantity in items:
        OrderItem.objects.create(order=order, product=product, quantity=quantity, price=product.price)
    return order
