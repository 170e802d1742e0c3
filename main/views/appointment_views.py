from django.views.decorators.csrf import csrf_exempt
from rest_framework.decorators import api_view

from ..services.appointment_service import AppointmentService
from main.helpers.response import APIResponse
from main.helpers.request import parse_json_body, get_tenant_id


@csrf_exempt
@api_view(["GET"])
def get_appointment(request, appointment_id):
    result = AppointmentService.get_appointment(get_tenant_id(request), appointment_id)

    if result['success']:
        return APIResponse.success(data=result['appointment'])

    return APIResponse.not_found(message=result['message'])


@csrf_exempt
@api_view(["POST"])
def create_appointment(request):
    data, error = parse_json_body(request)
    if error:
        return error

    missing = [field for field in ('service_id', 'client_name', 'scheduled_at') if not data.get(field)]
    if missing:
        return APIResponse.validation_error(
            errors={field: f'{field} is required' for field in missing},
            message='Missing required fields'
        )

    result = AppointmentService.create_appointment(
        get_tenant_id(request),
        service_id=data['service_id'],
        client_name=data['client_name'],
        scheduled_at=data['scheduled_at'],
        phone_number=data.get('phone_number'),
        notes=data.get('notes')
    )

    if result['success']:
        return APIResponse.created(
            data=AppointmentService.serialize(result['appointment']),
            message=result['message']
        )

    return APIResponse.error(message=result['message'], errors=result.get('errors'))


@csrf_exempt
@api_view(["PATCH"])
def update_appointment_status(request, appointment_id):
    data, error = parse_json_body(request)
    if error:
        return error

    status = data.get('status')

    if not status:
        return APIResponse.validation_error(
            errors={'status': 'status is required'},
            message='Missing status field'
        )

    result = AppointmentService.update_status(get_tenant_id(request), appointment_id, status)

    if result['success']:
        payload = {k: v for k, v in result.items() if k in ('deductions', 'restored')}
        return APIResponse.success(data=payload, message=result['message'])

    if result['message'] == 'Appointment not found':
        return APIResponse.not_found(message=result['message'])

    return APIResponse.error(message=result['message'], errors=result.get('errors'))
