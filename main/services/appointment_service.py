import logging
from datetime import datetime
from django.db import transaction, DatabaseError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from main.models import Appointment, SalonService
from stock.services import StockDeductionService

logger = logging.getLogger(__name__)


class AppointmentService:

    @staticmethod
    def serialize(appointment):
        return {
            'id': appointment.id,
            'service': {
                'id': appointment.service.id,
                'name': appointment.service.name,
                'duration_minutes': appointment.service.duration_minutes,
            },
            'client_name': appointment.client_name,
            'phone_number': appointment.phone_number,
            'scheduled_at': appointment.scheduled_at.isoformat(),
            'status': appointment.status,
            'price': str(appointment.price),
            'notes': appointment.notes,
            'completed_at': appointment.completed_at.isoformat() if appointment.completed_at else None,
            'cancelled_at': appointment.cancelled_at.isoformat() if appointment.cancelled_at else None,
        }

    @staticmethod
    def _parse_scheduled_at(value):
        if isinstance(value, datetime):
            scheduled_at = value
        else:
            scheduled_at = parse_datetime(value or '')
        if scheduled_at is None:
            raise ValueError('scheduled_at must be an ISO datetime')
        if timezone.is_naive(scheduled_at):
            scheduled_at = timezone.make_aware(scheduled_at)
        return scheduled_at

    @staticmethod
    def get_appointment(tenant_id, appointment_id):
        appointment = Appointment.objects.for_tenant(tenant_id).select_related('service').filter(
            id=appointment_id
        ).first()
        if not appointment:
            return {'success': False, 'message': 'Appointment not found'}
        return {'success': True, 'appointment': AppointmentService.serialize(appointment)}

    @staticmethod
    def create_appointment(tenant_id, service_id, client_name, scheduled_at,
                           phone_number=None, notes=None):
        """Book a service after checking its requirements are in stock."""
        service = SalonService.objects.for_tenant(tenant_id).filter(
            id=service_id, is_active=True
        ).select_related('sector').first()
        if not service:
            return {'success': False, 'message': f'Service with id {service_id} not found'}

        client_name = (client_name or '').strip()
        if not client_name:
            return {'success': False, 'message': 'Client name is required'}

        try:
            scheduled_at = AppointmentService._parse_scheduled_at(scheduled_at)
        except ValueError as e:
            return {'success': False, 'message': str(e)}

        errors = StockDeductionService.validate_availability(
            tenant_id, [{'sellable': service, 'quantity': 1}]
        )
        if errors:
            return {'success': False, 'message': 'Insufficient stock', 'errors': errors}

        appointment = Appointment.objects.create(
            tenant_id=tenant_id,
            service=service,
            client_name=client_name,
            phone_number=phone_number,
            scheduled_at=scheduled_at,
            price=service.price,
            notes=notes,
        )

        logger.info(f"Appointment #{appointment.id} booked for {service.name} (tenant {tenant_id})")

        return {
            'success': True,
            'appointment': appointment,
            'message': 'Appointment created successfully'
        }

    @staticmethod
    def update_status(tenant_id, appointment_id, status):
        """
        COMPLETED deducts the service requirements; the appointment stays in
        its current status when the deduction fails. CANCELLED puts back
        whatever a completed appointment consumed.
        """
        if status not in Appointment.Status.values:
            return {'success': False, 'message': 'Invalid status'}

        appointment = Appointment.objects.for_tenant(tenant_id).filter(id=appointment_id).first()
        if not appointment:
            return {'success': False, 'message': 'Appointment not found'}

        if appointment.status == status:
            return {'success': True, 'message': f'Appointment is already {status}'}

        if appointment.status == Appointment.Status.CANCELLED:
            return {'success': False, 'message': 'Cannot change status of a cancelled appointment'}

        if appointment.status == Appointment.Status.COMPLETED and status != Appointment.Status.CANCELLED:
            return {'success': False, 'message': 'A completed appointment can only be cancelled'}

        update_fields = ['status', 'updated_at']
        result = {'success': True}

        try:
            with transaction.atomic():
                if status == Appointment.Status.COMPLETED:
                    deduction = StockDeductionService.deduct_by_appointment(tenant_id, appointment.id)
                    if not deduction['success']:
                        logger.warning(f"Appointment #{appointment.id} not completed: {deduction['errors']}")
                        return {
                            'success': False,
                            'errors': deduction['errors'],
                            'message': f"Stock deduction failed: {'; '.join(deduction['errors'])}"
                        }
                    result['deductions'] = deduction['deductions']
                    appointment.completed_at = timezone.now()
                    update_fields.append('completed_at')

                elif status == Appointment.Status.CANCELLED:
                    restore = StockDeductionService.restore_stock_by_appointment(tenant_id, appointment.id)
                    if not restore['success']:
                        return {'success': False, 'message': restore['message']}
                    result['restored'] = restore['restored']
                    appointment.cancelled_at = timezone.now()
                    update_fields.append('cancelled_at')

                appointment.status = status
                appointment.save(update_fields=update_fields)
        except DatabaseError as e:
            logger.error(f"Status change of appointment #{appointment.id} to {status} failed: {e}", exc_info=True)
            return {'success': False, 'message': 'Failed to update appointment status'}

        logger.info(f"Appointment #{appointment.id} status changed to {status} (tenant {tenant_id})")

        result['message'] = f'Appointment status updated to {status}'
        return result
