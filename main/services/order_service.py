import logging
from decimal import Decimal
from django.db import transaction, IntegrityError, DatabaseError
from django.db.models import Max
from django.utils import timezone

from main.models import Order, OrderItem, Product
from stock.services import StockDeductionService

logger = logging.getLogger(__name__)


class OrderService:

    ORDER_NUMBER_ATTEMPTS = 3

    @staticmethod
    def _get_next_order_number(tenant_id):
        last = Order.objects.for_tenant(tenant_id).aggregate(max_number=Max('order_number'))
        return (last['max_number'] or 0) + 1

    @staticmethod
    def serialize(order):
        items = []
        for item in order.items.select_related('product'):
            items.append({
                'id': item.id,
                'product': {
                    'id': item.product.id,
                    'name': item.product.name,
                },
                'quantity': item.quantity,
                'price': str(item.price),
                'subtotal': str(item.price * item.quantity)
            })

        return {
            'id': order.id,
            'order_number': order.order_number,
            'order_type': order.order_type,
            'status': order.status,
            'customer_name': order.customer_name,
            'phone_number': order.phone_number,
            'description': order.description,
            'subtotal': str(order.subtotal),
            'total_amount': str(order.total_amount),
            'items': items,
            'created_at': order.created_at.isoformat(),
            'updated_at': order.updated_at.isoformat(),
            'cancelled_at': order.cancelled_at.isoformat() if order.cancelled_at else None
        }

    @staticmethod
    def get_order_by_id(tenant_id, order_id):
        order = Order.objects.for_tenant(tenant_id).filter(id=order_id).first()
        if not order:
            return {'success': False, 'message': 'Order not found'}
        return {'success': True, 'order': OrderService.serialize(order)}

    @staticmethod
    def _load_products(tenant_id, items):
        """Resolve item payloads to (product, quantity) pairs or raise ValueError."""
        if not items:
            raise ValueError('Order must have at least one item')

        lines = []
        for item_data in items:
            product_id = item_data.get('product_id')
            quantity = item_data.get('quantity', 1)

            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
                raise ValueError('Quantity must be a positive integer')

            product = Product.objects.for_tenant(tenant_id).filter(
                id=product_id, is_active=True
            ).select_related('sector').first()
            if not product:
                raise ValueError(f'Product with id {product_id} not found')

            lines.append((product, quantity))
        return lines

    @staticmethod
    @transaction.atomic
    def _create_records(tenant_id, lines, order_type, customer_name, phone_number, description):
        subtotal = sum((product.price * quantity for product, quantity in lines), Decimal('0.00'))

        order = Order.objects.create(
            tenant_id=tenant_id,
            order_number=OrderService._get_next_order_number(tenant_id),
            order_type=order_type,
            status=Order.Status.OPEN,
            customer_name=customer_name,
            phone_number=phone_number,
            description=description,
            subtotal=subtotal,
            total_amount=subtotal
        )

        OrderItem.objects.bulk_create([
            OrderItem(order=order, product=product, quantity=quantity, price=product.price)
            for product, quantity in lines
        ])

        return order

    @staticmethod
    def create_order(tenant_id, items, order_type=Order.OrderType.COUNTER,
                     customer_name=None, phone_number=None, description=None):
        """
        Validate stock, create the order and deduct its ingredients.
        An order whose deduction fails is kept as CANCELLED.
        """
        if order_type not in Order.OrderType.values:
            return {'success': False, 'message': f'Invalid order type: {order_type}'}

        try:
            lines = OrderService._load_products(tenant_id, items)
        except ValueError as e:
            return {'success': False, 'message': str(e)}

        errors = StockDeductionService.validate_availability(
            tenant_id,
            [{'sellable': product, 'quantity': quantity} for product, quantity in lines]
        )
        if errors:
            return {'success': False, 'message': 'Insufficient stock', 'errors': errors}

        order = None
        for attempt in range(OrderService.ORDER_NUMBER_ATTEMPTS):
            try:
                order = OrderService._create_records(
                    tenant_id, lines, order_type, customer_name, phone_number, description
                )
                break
            except IntegrityError:
                logger.warning(f"Order number collision for tenant {tenant_id}, attempt {attempt + 1}")

        if order is None:
            return {'success': False, 'message': 'Failed to allocate an order number'}

        deduction = StockDeductionService.deduct_by_order(tenant_id, order.id)

        if not deduction['success']:
            order.status = Order.Status.CANCELLED
            order.cancelled_at = timezone.now()
            order.save(update_fields=['status', 'cancelled_at', 'updated_at'])

            logger.warning(f"Order #{order.order_number} cancelled, stock deduction failed: {deduction['errors']}")

            return {
                'success': False,
                'order_id': order.id,
                'errors': deduction['errors'],
                'message': f"Stock deduction failed: {'; '.join(deduction['errors'])}"
            }

        logger.info(f"Order #{order.order_number} created for tenant {tenant_id}")

        return {
            'success': True,
            'order': order,
            'deductions': deduction['deductions'],
            'message': 'Order created successfully'
        }

    @staticmethod
    def update_order_status(tenant_id, order_id, status):
        if status not in Order.Status.values:
            return {'success': False, 'message': 'Invalid status'}

        order = Order.objects.for_tenant(tenant_id).filter(id=order_id).first()
        if not order:
            return {'success': False, 'message': 'Order not found'}

        if order.status == status:
            return {'success': True, 'message': f'Order is already {status}'}

        if order.status == Order.Status.CANCELLED:
            return {'success': False, 'message': 'Cannot change status of a cancelled order'}

        restored = []
        try:
            with transaction.atomic():
                if status == Order.Status.CANCELLED:
                    restore = StockDeductionService.restore_stock_by_order(tenant_id, order.id)
                    if not restore['success']:
                        return {'success': False, 'message': restore['message']}
                    restored = restore['restored']
                    order.cancelled_at = timezone.now()

                order.status = status
                order.save(update_fields=['status', 'cancelled_at', 'updated_at'])
        except DatabaseError as e:
            logger.error(f"Status change of order #{order.order_number} to {status} failed: {e}", exc_info=True)
            return {'success': False, 'message': 'Failed to update order status'}

        logger.info(f"Order #{order.order_number} status changed to {status} (tenant {tenant_id})")

        return {
            'success': True,
            'restored': restored,
            'message': f'Order status updated to {status}'
        }

    @staticmethod
    def cancel_order(tenant_id, order_id):
        return OrderService.update_order_status(tenant_id, order_id, Order.Status.CANCELLED)
