import json
from decimal import Decimal
from django.test import TestCase, Client

from main.models import Order
from stock.tests.factories import (
    TENANT, make_sector, make_ingredient, make_product, make_service, set_balance, balance_of
)


class SalesApiTests(TestCase):

    def setUp(self):
        self.client = Client(HTTP_X_TENANT_ID=TENANT)
        self.central = make_sector("Central Warehouse", is_central=True)
        self.steak = make_ingredient("Steak", unit="un")
        set_balance(self.steak, self.central, 3)
        self.plate = make_product("Steak plate", recipe=[(self.steak, 1)], price="25.00")

    def send(self, method, url, data):
        return getattr(self.client, method)(url, data=json.dumps(data), content_type='application/json')

    def test_create_order(self):
        response = self.send('post', '/api/orders/create', {
            'items': [{'product_id': self.plate.id, 'quantity': 2}],
            'order_type': 'HALL',
        })

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['data']['order_number'], 1)
        self.assertEqual(Decimal(str(body['data']['deductions'][0]['quantity'])), Decimal('2'))
        self.assertEqual(balance_of(self.steak, self.central), Decimal('1'))

    def test_create_order_insufficient_stock(self):
        response = self.send('post', '/api/orders/create', {
            'items': [{'product_id': self.plate.id, 'quantity': 4}],
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()['errors'], ['Insufficient stock for Steak: required 4.000, available 3.000']
        )

    def test_create_order_requires_items(self):
        missing = self.send('post', '/api/orders/create', {})
        no_product = self.send('post', '/api/orders/create', {'items': [{'quantity': 1}]})

        self.assertEqual(missing.status_code, 400)
        self.assertEqual(no_product.json()['message'], 'Item 0 missing product_id')

    def test_get_and_cancel_order(self):
        order_id = self.send('post', '/api/orders/create', {
            'items': [{'product_id': self.plate.id, 'quantity': 3}],
        }).json()['data']['order_id']

        detail = self.client.get(f'/api/orders/{order_id}')
        foreign = Client(HTTP_X_TENANT_ID='salon').get(f'/api/orders/{order_id}')
        cancelled = self.client.post(f'/api/orders/{order_id}/cancel')

        self.assertEqual(detail.json()['data']['status'], 'OPEN')
        self.assertEqual(foreign.status_code, 404)
        self.assertEqual(cancelled.status_code, 200)
        self.assertEqual(len(cancelled.json()['data']['restored']), 1)
        self.assertEqual(balance_of(self.steak, self.central), Decimal('3'))
        self.assertEqual(Order.objects.get(id=order_id).status, Order.Status.CANCELLED)

    def test_update_order_status(self):
        order_id = self.send('post', '/api/orders/create', {
            'items': [{'product_id': self.plate.id, 'quantity': 1}],
        }).json()['data']['order_id']

        ready = self.send('patch', f'/api/orders/{order_id}/status', {'status': 'READY'})
        invalid = self.send('patch', f'/api/orders/{order_id}/status', {'status': 'LOST'})
        missing = self.send('patch', '/api/orders/999/status', {'status': 'READY'})

        self.assertEqual(ready.status_code, 200)
        self.assertEqual(invalid.status_code, 400)
        self.assertEqual(missing.status_code, 404)

    def test_appointment_lifecycle(self):
        gel = make_ingredient("Gel", unit="ml")
        set_balance(gel, self.central, 100)
        styling = make_service("Styling", requirements=[(gel, 30)], price="40.00")

        created = self.send('post', '/api/appointments/create', {
            'service_id': styling.id, 'client_name': 'Joana', 'scheduled_at': '2026-11-03T15:30:00',
        })
        appointment_id = created.json()['data']['id']
        completed = self.send('patch', f'/api/appointments/{appointment_id}/status', {'status': 'COMPLETED'})

        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()['data']['status'], 'SCHEDULED')
        self.assertEqual(completed.status_code, 200)
        self.assertEqual(completed.json()['data']['deductions'][0]['ingredient'], 'Gel')
        self.assertEqual(balance_of(gel, self.central), Decimal('70'))

    def test_appointment_requires_fields(self):
        response = self.send('post', '/api/appointments/create', {'client_name': 'Joana'})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(set(response.json()['errors']), {'service_id', 'scheduled_at'})

    def test_catalog_endpoints(self):
        product = self.send('post', '/api/products/create', {'name': 'Burger', 'price': '18.90'})
        product_id = product.json()['data']['id']

        recipe = self.send('put', f'/api/products/{product_id}/recipe', {
            'ingredient_id': self.steak.id, 'quantity': 1,
        })
        removed = self.client.delete(f'/api/products/{product_id}/recipe/{self.steak.id}')
        gone = self.client.delete(f'/api/products/{product_id}/recipe/{self.steak.id}')

        self.assertEqual(product.status_code, 201)
        self.assertEqual(recipe.status_code, 200)
        self.assertEqual(recipe.json()['data'][0]['ingredient'], 'Steak')
        self.assertEqual(removed.status_code, 200)
        self.assertEqual(gone.status_code, 404)

    def test_invalid_json_body(self):
        response = self.client.post('/api/orders/create', data='{not json', content_type='application/json')
        self.assertEqual(response.status_code, 400)
