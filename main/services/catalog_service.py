from decimal import Decimal, InvalidOperation
from django.db import transaction

from main.models import Product, Recipe, SalonService, ServiceRequirement
from stock.models import Ingredient, Sector
from stock.services import UnitService


class CatalogService:
    """Sellable items and the ingredients each one consumes."""

    @staticmethod
    def _parse_amount(value, field):
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise ValueError(f'{field} must be a number')
        if not amount.is_finite() or amount < 0:
            raise ValueError(f'{field} must be a non-negative number')
        return amount

    @staticmethod
    def _get_sector(tenant_id, sector_id):
        if not sector_id:
            return None
        sector = Sector.objects.for_tenant(tenant_id).filter(id=sector_id).first()
        if not sector:
            raise ValueError(f'Sector with id {sector_id} not found')
        return sector

    @staticmethod
    def _component_values(tenant_id, ingredient_id, quantity, unit):
        ingredient = Ingredient.objects.for_tenant(tenant_id).filter(
            id=ingredient_id, is_active=True
        ).first()
        if not ingredient:
            raise ValueError(f'Ingredient with id {ingredient_id} not found')

        quantity = CatalogService._parse_amount(quantity, 'quantity')
        if quantity == 0:
            raise ValueError('quantity must be greater than 0')

        if unit and not UnitService.are_compatible(unit, ingredient.unit):
            raise ValueError(
                f'Unit {unit} is not compatible with {ingredient.name} ({ingredient.unit}). '
                f'Use one of: {", ".join(UnitService.compatible_units(ingredient.unit))}'
            )

        return ingredient, quantity

    @staticmethod
    def serialize_components(lines):
        return [
            {
                'ingredient_id': line.ingredient_id,
                'ingredient': line.ingredient.name,
                'quantity': str(line.quantity),
                'unit': line.unit or line.ingredient.unit,
            }
            for line in lines.select_related('ingredient')
        ]

    # ==================== PRODUCTS ====================

    @staticmethod
    def create_product(tenant_id, name, price, sector_id=None, description=None):
        name = (name or '').strip()
        if not name:
            return {'success': False, 'message': 'Product name is required'}

        try:
            price = CatalogService._parse_amount(price, 'price')
            sector = CatalogService._get_sector(tenant_id, sector_id)
        except ValueError as e:
            return {'success': False, 'message': str(e)}

        product = Product.objects.create(
            tenant_id=tenant_id,
            name=name,
            price=price,
            sector=sector,
            description=description
        )

        return {
            'success': True,
            'product': {
                'id': product.id,
                'name': product.name,
                'price': str(product.price),
                'sector_id': product.sector_id
            },
            'message': 'Product created successfully'
        }

    @staticmethod
    @transaction.atomic
    def set_recipe_line(tenant_id, product_id, ingredient_id, quantity, unit=None):
        product = Product.objects.for_tenant(tenant_id).filter(id=product_id).first()
        if not product:
            return {'success': False, 'message': 'Product not found'}

        try:
            ingredient, quantity = CatalogService._component_values(tenant_id, ingredient_id, quantity, unit)
        except ValueError as e:
            return {'success': False, 'message': str(e)}

        Recipe.objects.update_or_create(
            product=product,
            ingredient=ingredient,
            defaults={'quantity': quantity, 'unit': unit or None}
        )

        return {
            'success': True,
            'recipe': CatalogService.serialize_components(product.recipes.all()),
            'message': 'Recipe updated successfully'
        }

    @staticmethod
    def remove_recipe_line(tenant_id, product_id, ingredient_id):
        deleted, _ = Recipe.objects.filter(
            product__tenant_id=tenant_id, product_id=product_id, ingredient_id=ingredient_id
        ).delete()
        if not deleted:
            return {'success': False, 'message': 'Recipe line not found'}
        return {'success': True, 'message': 'Recipe line removed'}

    # ==================== SALON SERVICES ====================

    @staticmethod
    def create_service(tenant_id, name, price, duration_minutes=30, sector_id=None, description=None):
        name = (name or '').strip()
        if not name:
            return {'success': False, 'message': 'Service name is required'}

        if not isinstance(duration_minutes, int) or duration_minutes <= 0:
            return {'success': False, 'message': 'duration_minutes must be a positive integer'}

        try:
            price = CatalogService._parse_amount(price, 'price')
            sector = CatalogService._get_sector(tenant_id, sector_id)
        except ValueError as e:
            return {'success': False, 'message': str(e)}

        service = SalonService.objects.create(
            tenant_id=tenant_id,
            name=name,
            price=price,
            duration_minutes=duration_minutes,
            sector=sector,
            description=description
        )

        return {
            'success': True,
            'service': {
                'id': service.id,
                'name': service.name,
                'price': str(service.price),
                'duration_minutes': service.duration_minutes,
                'sector_id': service.sector_id
            },
            'message': 'Service created successfully'
        }

    @staticmethod
    @transaction.atomic
    def set_requirement_line(tenant_id, service_id, ingredient_id, quantity, unit=None):
        service = SalonService.objects.for_tenant(tenant_id).filter(id=service_id).first()
        if not service:
            return {'success': False, 'message': 'Service not found'}

        try:
            ingredient, quantity = CatalogService._component_values(tenant_id, ingredient_id, quantity, unit)
        except ValueError as e:
            return {'success': False, 'message': str(e)}

        ServiceRequirement.objects.update_or_create(
            service=service,
            ingredient=ingredient,
            defaults={'quantity': quantity, 'unit': unit or None}
        )

        return {
            'success': True,
            'requirements': CatalogService.serialize_components(service.requirements.all()),
            'message': 'Service requirements updated successfully'
        }
