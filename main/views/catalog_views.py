from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from ..services.catalog_service import CatalogService
from main.helpers.response import APIResponse
from main.helpers.request import parse_json_body, get_tenant_id


@csrf_exempt
@api_view(["POST"])
def create_product(request):
    data, error = parse_json_body(request)
    if error:
        return error

    result = CatalogService.create_product(
        get_tenant_id(request),
        name=data.get('name'),
        price=data.get('price', 0),
        sector_id=data.get('sector_id'),
        description=data.get('description')
    )

    if result['success']:
        return APIResponse.created(data=result['product'], message=result['message'])

    return APIResponse.error(message=result['message'])


@csrf_exempt
@api_view(["PUT"])
def set_recipe_line(request, product_id):
    data, error = parse_json_body(request)
    if error:
        return error

    result = CatalogService.set_recipe_line(
        get_tenant_id(request),
        product_id,
        ingredient_id=data.get('ingredient_id'),
        quantity=data.get('quantity'),
        unit=data.get('unit')
    )

    if result['success']:
        return APIResponse.success(data=result['recipe'], message=result['message'])

    if result['message'] == 'Product not found':
        return APIResponse.not_found(message=result['message'])

    return APIResponse.error(message=result['message'])


@csrf_exempt
@api_view(["POST"])
def create_service(request):
    data, error = parse_json_body(request)
    if error:
        return error

    result = CatalogService.create_service(
        get_tenant_id(request),
        name=data.get('name'),
        price=data.get('price', 0),
        duration_minutes=data.get('duration_minutes', 30),
        sector_id=data.get('sector_id'),
        description=data.get('description')
    )

    if result['success']:
        return APIResponse.created(data=result['service'], message=result['message'])

    return APIResponse.error(message=result['message'])


@csrf_exempt
@api_view(["PUT"])
def set_requirement_line(request, service_id):
    data, error = parse_json_body(request)
    if error:
        return error

    result = CatalogService.set_requirement_line(
        get_tenant_id(request),
        service_id,
        ingredient_id=data.get('ingredient_id'),
        quantity=data.get('quantity'),
        unit=data.get('unit')
    )

    if result['success']:
        return APIResponse.success(data=result['requirements'], message=result['message'])

    if result['message'] == 'Service not found':
        return APIResponse.not_found(message=result['message'])

    return APIResponse.error(message=result['message'])


@csrf_exempt
@api_view(["DELETE"])
def remove_recipe_line(request, product_id, ingredient_id):
    result = CatalogService.remove_recipe_line(get_tenant_id(request), product_id, ingredient_id)

    if result['success']:
        return APIResponse.success(message=result['message'])

    return APIResponse.not_found(message=result['message'])
