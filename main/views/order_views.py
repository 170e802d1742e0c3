from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from ..services.order_service import OrderService
from main.helpers.response import APIResponse
from main.helpers.request import parse_json_body, get_tenant_id


@csrf_exempt
@api_view(["GET"])
def get_order(request, order_id):
    result = OrderService.get_order_by_id(get_tenant_id(request), order_id)

    if result['success']:
        return APIResponse.success(data=result['order'])

    return APIResponse.not_found(message=result['message'])


@csrf_exempt
@api_view(["POST"])
def create_order(request):
    data, error = parse_json_body(request)
    if error:
        return error

    items = data.get('items', [])

    if not items or not isinstance(items, list):
        return APIResponse.validation_error(
            errors={'items': 'At least one item is required'},
            message='Order must contain items'
        )

    for idx, item in enumerate(items):
        if not isinstance(item, dict) or 'product_id' not in item:
            return APIResponse.validation_error(
                errors={f'items[{idx}].product_id': 'product_id is required'},
                message=f'Item {idx} missing product_id'
            )

    result = OrderService.create_order(
        get_tenant_id(request),
        items=items,
        order_type=data.get('order_type', 'COUNTER'),
        customer_name=data.get('customer_name'),
        phone_number=data.get('phone_number'),
        description=data.get('description')
    )

    if result['success']:
        return APIResponse.created(
            data={
                'order_id': result['order'].id,
                'order_number': result['order'].order_number,
                'deductions': result['deductions']
            },
            message=result['message']
        )

    return APIResponse.error(message=result['message'], errors=result.get('errors'))


@csrf_exempt
@api_view(["PATCH"])
def update_order_status(request, order_id):
    data, error = parse_json_body(request)
    if error:
        return error

    status = data.get('status')

    if not status:
        return APIResponse.validation_error(
            errors={'status': 'status is required'},
            message='Missing status field'
        )

    result = OrderService.update_order_status(get_tenant_id(request), order_id, status)

    if result['success']:
        return APIResponse.success(data={'restored': result.get('restored', [])}, message=result['message'])

    if result['message'] == 'Order not found':
        return APIResponse.not_found(message=result['message'])

    return APIResponse.error(message=result['message'])


@csrf_exempt
@api_view(["POST"])
def cancel_order(request, order_id):
    result = OrderService.cancel_order(get_tenant_id(request), order_id)

    if result['success']:
        return APIResponse.success(data={'restored': result.get('restored', [])}, message=result['message'])

    if result['message'] == 'Order not found':
        return APIResponse.not_found(message=result['message'])

    return APIResponse.error(message=result['message'])
