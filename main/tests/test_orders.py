from decimal import Decimal
from unittest import mock
from django.db import DatabaseError
from django.test import TestCase

from main.models import Order
from main.services.order_service import OrderService
from stock.models import StockDeduction, StockMovement
from stock.services import StockDeductionService
from stock.tests.factories import (
    TENANT, make_sector, make_ingredient, make_product, make_order, set_balance, balance_of
)


class OrderServiceTests(TestCase):

    def setUp(self):
        self.central = make_sector("Central Warehouse", is_central=True)
        self.kitchen = make_sector("Kitchen")
        self.flour = make_ingredient("Flour", unit="kg")
        set_balance(self.flour, self.central, 50)
        self.bread = make_product("Bread", recipe=[(self.flour, "0.5")], sector=self.kitchen, price="4.50")

    def create(self, quantity=2, **kwargs):
        return OrderService.create_order(
            TENANT, [{'product_id': self.bread.id, 'quantity': quantity}], **kwargs
        )

    def test_create_order_deducts_stock(self):
        result = self.create(quantity=4, customer_name='Ana')

        self.assertTrue(result['success'], result)
        order = result['order']
        self.assertEqual(order.order_number, 1)
        self.assertEqual(order.status, Order.Status.OPEN)
        self.assertEqual(order.total_amount, Decimal('18.00'))
        self.assertEqual(len(result['deductions']), 1)
        self.assertEqual(balance_of(self.flour, self.central), Decimal('48'))
        self.assertTrue(StockDeduction.objects.filter(reference_id=order.id).exists())

    def test_order_numbers_are_sequential_per_tenant(self):
        first = self.create()['order']
        second = self.create()['order']

        self.assertEqual((first.order_number, second.order_number), (1, 2))

        other_flour = make_ingredient("Flour", tenant_id='bistro')
        set_balance(other_flour, make_sector("Store", tenant_id='bistro'), 10)
        toast = make_product("Toast", recipe=[(other_flour, 1)], tenant_id='bistro')
        other = OrderService.create_order('bistro', [{'product_id': toast.id, 'quantity': 1}])
        self.assertEqual(other['order'].order_number, 1)

    def test_insufficient_stock_creates_nothing(self):
        result = self.create(quantity=101)

        self.assertFalse(result['success'])
        self.assertEqual(result['message'], 'Insufficient stock')
        self.assertEqual(result['errors'], ['Insufficient stock for Flour: required 50.500, available 50.000'])
        self.assertFalse(Order.objects.exists())
        self.assertFalse(StockMovement.objects.exists())

    def test_failed_deduction_leaves_order_cancelled(self):
        with mock.patch.object(StockDeductionService, 'validate_availability', return_value=[]):
            result = self.create(quantity=200)

        self.assertFalse(result['success'])
        self.assertTrue(result['message'].startswith('Stock deduction failed: Insufficient stock for Flour'))
        order = Order.objects.get(id=result['order_id'])
        self.assertEqual(order.status, Order.Status.CANCELLED)
        self.assertIsNotNone(order.cancelled_at)
        self.assertEqual(balance_of(self.flour, self.central), Decimal('50'))

    def test_invalid_items(self):
        cases = [
            ([], 'Order must have at least one item'),
            ([{'product_id': self.bread.id, 'quantity': 0}], 'Quantity must be a positive integer'),
            ([{'product_id': self.bread.id, 'quantity': True}], 'Quantity must be a positive integer'),
            ([{'product_id': self.bread.id, 'quantity': '2'}], 'Quantity must be a positive integer'),
            ([{'product_id': 999, 'quantity': 1}], 'Product with id 999 not found'),
        ]
        for items, message in cases:
            with self.subTest(items=items):
                result = OrderService.create_order(TENANT, items)
                self.assertFalse(result['success'])
                self.assertEqual(result['message'], message)

    def test_product_of_other_tenant_is_not_found(self):
        result = OrderService.create_order('bistro', [{'product_id': self.bread.id, 'quantity': 1}])
        self.assertEqual(result['message'], f'Product with id {self.bread.id} not found')

    def test_invalid_order_type(self):
        result = self.create(order_type='DRONE')
        self.assertEqual(result['message'], 'Invalid order type: DRONE')

    def test_order_number_collision_is_retried(self):
        make_order([(self.bread, 1)])

        with mock.patch.object(OrderService, '_get_next_order_number', side_effect=[1, 2]):
            result = self.create()

        self.assertTrue(result['success'])
        self.assertEqual(result['order'].order_number, 2)

    def test_order_number_allocation_gives_up(self):
        make_order([(self.bread, 1)])

        with mock.patch.object(OrderService, '_get_next_order_number', return_value=1):
            result = self.create()

        self.assertFalse(result['success'])
        self.assertEqual(result['message'], 'Failed to allocate an order number')
        self.assertEqual(Order.objects.count(), 1)
        self.assertEqual(balance_of(self.flour, self.central), Decimal('50'))

    def test_get_order(self):
        order = self.create(quantity=3)['order']

        result = OrderService.get_order_by_id(TENANT, order.id)

        self.assertTrue(result['success'])
        self.assertEqual(result['order']['items'][0]['subtotal'], '13.50')
        self.assertFalse(OrderService.get_order_by_id('bistro', order.id)['success'])


class OrderStatusTests(TestCase):

    def setUp(self):
        self.central = make_sector("Central Warehouse", is_central=True)
        self.flour = make_ingredient("Flour", unit="kg")
        set_balance(self.flour, self.central, 10)
        self.bread = make_product("Bread", recipe=[(self.flour, 1)])
        self.order = OrderService.create_order(
            TENANT, [{'product_id': self.bread.id, 'quantity': 3}]
        )['order']

    def test_progressing_status_does_not_touch_stock(self):
        result = OrderService.update_order_status(TENANT, self.order.id, Order.Status.PREPARING)

        self.assertTrue(result['success'])
        self.assertEqual(result['restored'], [])
        self.assertEqual(balance_of(self.flour, self.central), Decimal('7'))

    def test_cancel_restores_stock(self):
        result = OrderService.cancel_order(TENANT, self.order.id)

        self.assertTrue(result['success'])
        self.assertEqual(len(result['restored']), 1)
        self.assertEqual(balance_of(self.flour, self.central), Decimal('10'))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.Status.CANCELLED)
        self.assertIsNotNone(self.order.cancelled_at)

    def test_cancel_twice_restores_once(self):
        OrderService.cancel_order(TENANT, self.order.id)
        result = OrderService.cancel_order(TENANT, self.order.id)

        self.assertTrue(result['success'])
        self.assertEqual(result['message'], 'Order is already CANCELLED')
        self.assertEqual(balance_of(self.flour, self.central), Decimal('10'))

    def test_cancelled_order_cannot_be_reopened(self):
        OrderService.cancel_order(TENANT, self.order.id)

        result = OrderService.update_order_status(TENANT, self.order.id, Order.Status.OPEN)

        self.assertFalse(result['success'])
        self.assertEqual(result['message'], 'Cannot change status of a cancelled order')

    def test_invalid_status_and_missing_order(self):
        self.assertEqual(
            OrderService.update_order_status(TENANT, self.order.id, 'LOST')['message'], 'Invalid status'
        )
        self.assertEqual(
            OrderService.update_order_status('bistro', self.order.id, Order.Status.READY)['message'],
            'Order not found'
        )

    def test_failed_save_keeps_stock_deducted(self):
        with mock.patch.object(Order, 'save', side_effect=DatabaseError('disk full')):
            result = OrderService.cancel_order(TENANT, self.order.id)

        self.assertFalse(result['success'])
        self.assertEqual(result['message'], 'Failed to update order status')
        self.assertEqual(balance_of(self.flour, self.central), Decimal('7'))
        self.assertIsNone(StockDeduction.objects.get(reference_id=self.order.id).reversed_at)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.Status.OPEN)
