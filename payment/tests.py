from unittest.mock import patch

import fakeredis
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIRequestFactory, APITestCase
from rest_framework import status
from orders.models import Order, OrderItem, Table
from orders import settlement
from orders.services import place_order
from orders.tests import create_dining_room
from .models import Payment
from .gateway import MockPaymentGateway, PaymentGatewayError
from .views import SubmitPaymentView

real_charge = MockPaymentGateway.charge


class PaymentGatewayTests(TestCase):
    """Test mock payment gateway functionality"""

    def setUp(self):
        self.redis = fakeredis.FakeRedis(decode_responses=True)
        self.gateway = MockPaymentGateway(redis_client=self.redis)

    def test_charge(self):
        """Test a successful charge"""
        result = self.gateway.charge(12600, currency='egp')

        self.assertEqual(result['status'], 'succeeded')
        self.assertEqual(result['provider'], 'stripe')
        self.assertTrue(result['reference'].startswith('pi_'))
        self.assertEqual(result['amount'], 12600)
        self.assertEqual(result['currency'], 'egp')

    def test_charge_references_per_provider(self):
        paypal = MockPaymentGateway(provider='paypal', redis_client=self.redis)
        paymob = MockPaymentGateway(provider='paymob', redis_client=self.redis)

        self.assertTrue(paypal.charge(1000)['reference'].startswith('PAYID_'))
        self.assertTrue(paymob.charge(1000)['reference'].startswith('pm_'))
        self.assertNotEqual(self.gateway.charge(1000)['reference'], self.gateway.charge(1000)['reference'])

    def test_unknown_provider(self):
        with self.assertRaises(ValueError):
            MockPaymentGateway(provider='bitcoin', redis_client=self.redis)

    def test_payment_failure_amount_ends_in_13(self):
        """Test payment failure when amount ends in 13"""
        for amount in [113, 213, 1013, 2013]:
            result = self.gateway.charge(amount)
            self.assertEqual(result['status'], 'failed')
            self.assertEqual(result['reason'], 'Insufficient funds')

    def test_payment_success_amount_not_ending_in_13(self):
        """Test payment success when amount doesn't end in 13"""
        for amount in [100, 200, 1000, 2000, 1012, 2014]:
            result = self.gateway.charge(amount)
            self.assertEqual(result['status'], 'succeeded')

    def test_stored_results(self):
        """Test Redis remembers completed payment responses"""
        payload = {'success': True, 'order_id': 7, 'amount_p': 12600}

        self.assertTrue(self.gateway.store_result('key-123', payload))
        self.assertEqual(self.gateway.get_stored_result('key-123'), payload)
        self.assertGreater(self.redis.ttl('payment_result:key-123'), 0)

        self.assertTrue(self.gateway.clear_stored_result('key-123'))
        self.assertIsNone(self.gateway.get_stored_result('key-123'))
        self.assertFalse(self.gateway.clear_stored_result('key-123'))

    def test_reserve_key(self):
        """Test only the first request can claim a key and a pending key replays nothing"""
        self.assertTrue(self.gateway.reserve_key('key-456'))
        self.assertFalse(self.gateway.reserve_key('key-456'))
        self.assertIsNone(self.gateway.get_stored_result('key-456'))
        self.assertGreater(self.redis.ttl('payment_result:key-456'), 0)

        self.gateway.store_result('key-456', {'success': True})
        self.assertFalse(self.gateway.reserve_key('key-456'))
        self.assertEqual(self.gateway.get_stored_result('key-456'), {'success': True})

    def test_refund(self):
        result = self.gateway.refund('pi_3f2a9c1b', 12600)

        self.assertEqual(result['status'], 'refunded')
        self.assertEqual(result['reference'], 'pi_3f2a9c1b')
        self.assertEqual(result['amount'], 12600)


class PaymentAPITests(APITestCase):
    """Test paying for whole orders and for selected items"""

    def setUp(self):
        self.restaurant, self.table, self.soup, self.salad = create_dining_room()
        # A = 2 x soup (100.00), B = 1 x salad (50.00); total with tax + service = 189.00
        self.order = place_order(self.table, [
            {'menu_item_id': self.soup.id, 'quantity': 2},
            {'menu_item_id': self.salad.id, 'quantity': 1},
        ])
        self.item_a = self.order.items.get(menu_item=self.soup)
        self.item_b = self.order.items.get(menu_item=self.salad)
        self.url = reverse('submit_payment')

        self.redis = fakeredis.FakeRedis(decode_responses=True)
        self.redis.flushall()
        patcher = patch('payment.gateway.get_redis_client', return_value=self.redis)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_full_order_payment(self):
        """Test paying an order in full settles all its items and frees the table"""
        data = {'order_id': self.order.id, 'amount_p': 18900, 'payment_method': 'card'}

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['order_id'], self.order.id)
        self.assertEqual(response.data['amount_p'], 18900)
        self.assertEqual(response.data['provider']['status'], 'succeeded')

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_COMPLETED)
        self.assertEqual(self.order.payment_ref, response.data['provider']['reference'])
        self.assertFalse(OrderItem.objects.filter(is_paid=False).exists())
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.AVAILABLE)

        payment = Payment.objects.get()
        self.assertEqual(payment.status, Payment.SUCCEEDED)
        self.assertEqual(payment.order, self.order)
        self.assertEqual(payment.settled_items.count(), 2)
        self.assertIsNotNone(payment.confirmed_at)

    def test_full_order_payment_twice(self):
        """Test a paid order cannot be charged again"""
        self.client.post(self.url, {'order_id': self.order.id}, format='json')

        response = self.client.post(self.url, {'order_id': self.order.id}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(Payment.objects.count(), 1)

    def test_unknown_order(self):
        response = self.client.post(self.url, {'order_id': 999999}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Order not found'})

    def test_partial_payment(self):
        """Test paying for selected items records a receipt order and leaves the rest unpaid"""
        data = {
            'item_ids': [self.item_a.id],
            'table_number': '12',
            'tip_p': 500,
            'amount_p': 13100,
            'provider': 'paymob',
        }

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotEqual(response.data['order_id'], self.order.id)
        self.assertTrue(response.data['provider']['reference'].startswith('pm_'))

        receipt = Order.objects.get(pk=response.data['order_id'])
        self.assertEqual(receipt.total_p, 13100)
        self.assertEqual(receipt.payment_status, Order.PAYMENT_COMPLETED)

        self.item_a.refresh_from_db()
        self.item_b.refresh_from_db()
        self.assertTrue(self.item_a.is_paid)
        self.assertFalse(self.item_b.is_paid)

        payment = Payment.objects.get()
        self.assertEqual(payment.order, receipt)
        self.assertEqual(list(payment.settled_items.all()), [self.item_a])

        response = self.client.get(reverse('unpaid_items', kwargs={'table_number': '12'}))
        self.assertEqual([row['menu_item_id'] for row in response.data['items']], [self.salad.id])

    def test_partial_payment_infers_table(self):
        """Test the table is taken from the items when no table number is sent"""
        response = self.client.post(self.url, {'item_ids': [self.item_b.id]}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['amount_p'], 5000 + 700 + 600)

    def test_partial_payment_scenario(self):
        """Test paying A then B through the API frees the table"""
        response = self.client.post(self.url, {'item_ids': [self.item_a.id], 'table_number': '12'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.OCCUPIED)

        response = self.client.post(self.url, {'item_ids': [self.item_b.id], 'table_number': '12'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.AVAILABLE)
        response = self.client.get(reverse('unpaid_items', kwargs={'table_number': '12'}))
        self.assertEqual(response.data['items'], [])
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_COMPLETED)

    def test_partial_payment_wrong_table(self):
        """Test items of another table are rejected before charging"""
        other_table = Table.objects.create(restaurant=self.restaurant, number='7')
        other_order = place_order(other_table, [{'menu_item_id': self.soup.id, 'quantity': 1}])
        data = {'item_ids': [self.item_a.id, other_order.items.get().id], 'table_number': '12'}

        response = self.client.post(self.url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Some items not found or do not belong to this table')

        response = self.client.post(self.url, {'item_ids': data['item_ids']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.assertFalse(Payment.objects.exists())
        self.assertFalse(OrderItem.objects.filter(is_paid=True).exists())

    def test_empty_item_list(self):
        response = self.client.post(self.url, {'item_ids': [], 'table_number': '12'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No items selected for payment')

    def test_missing_order_and_items(self):
        response = self.client.post(self.url, {'amount_p': 100}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Either order_id or item_ids is required')
        self.assertIn('details', response.data)

    def test_already_paid_items(self):
        """Test re-paying paid items conflicts without charging"""
        self.client.post(self.url, {'item_ids': [self.item_a.id], 'table_number': '12'}, format='json')

        response = self.client.post(self.url, {'item_ids': [self.item_a.id], 'table_number': '12'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(Payment.objects.count(), 1)

    def test_amount_mismatch(self):
        """Test the client's amount must match what is due"""
        data = {'item_ids': [self.item_a.id], 'table_number': '12', 'amount_p': 10000}

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Payment.objects.exists())
        self.item_a.refresh_from_db()
        self.assertFalse(self.item_a.is_paid)

    def test_declined_payment(self):
        """Test a declined charge leaves every item unpaid"""
        # 126.00 + 0.13 tip ends in 13
        data = {'item_ids': [self.item_a.id], 'table_number': '12', 'tip_p': 13}

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)
        self.assertEqual(response.data, {'error': 'Payment failed', 'reason': 'Insufficient funds'})

        self.assertFalse(OrderItem.objects.filter(is_paid=True).exists())
        self.assertEqual(Order.objects.count(), 1)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.OCCUPIED)

        payment = Payment.objects.get()
        self.assertEqual(payment.status, Payment.FAILED)
        self.assertEqual(payment.failure_reason, 'Insufficient funds')
        self.assertEqual(payment.amount_p, 12613)

    @patch.object(MockPaymentGateway, 'charge', side_effect=PaymentGatewayError('Connection timed out'))
    def test_provider_error(self, mock_charge):
        """Test provider outages surface as 502 and settle nothing"""
        response = self.client.post(self.url, {'order_id': self.order.id}, format='json')

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data, {'error': 'Payment provider unavailable'})
        mock_charge.assert_called_once()

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PENDING)
        self.assertFalse(OrderItem.objects.filter(is_paid=True).exists())
        self.assertFalse(Payment.objects.exists())

    def test_idempotent_retry(self):
        """Test retrying with the same idempotency key replays the first response"""
        data = {'item_ids': [self.item_a.id], 'table_number': '12', 'idempotency_key': 'checkout-42'}

        first = self.client.post(self.url, data, format='json')
        second = self.client.post(self.url, data, format='json')

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(second.data, first.data)
        self.assertEqual(Payment.objects.count(), 1)
        self.assertEqual(Order.objects.count(), 2)  # original + one receipt
        self.assertIsNotNone(self.redis.get('payment_result:checkout-42'))

    def test_unknown_provider(self):
        data = {'order_id': self.order.id, 'provider': 'bitcoin'}

        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_response_includes_payment_record(self):
        response = self.client.post(self.url, {'order_id': self.order.id}, format='json')

        payment = Payment.objects.get()
        self.assertEqual(response.data['payment']['id'], payment.id)
        self.assertEqual(response.data['payment']['status'], Payment.SUCCEEDED)
        self.assertEqual(response.data['payment']['provider_ref'], response.data['provider']['reference'])
        self.assertEqual(response.data['payment']['amount_p'], 18900)

    def test_retry_while_first_payment_in_progress(self):
        """Test a retry that arrives mid-charge is refused instead of charging again"""
        data = {'item_ids': [self.item_a.id], 'table_number': '12', 'idempotency_key': 'checkout-43'}
        retries = []

        def charge_and_retry(gateway, amount_p, currency='egp'):
            request = APIRequestFactory().post(self.url, data, format='json')
            retries.append(SubmitPaymentView.as_view()(request))
            return real_charge(gateway, amount_p, currency=currency)

        with patch.object(MockPaymentGateway, 'charge', autospec=True, side_effect=charge_and_retry) as mock_charge:
            response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(retries[0].status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(retries[0].data, {'error': 'A payment with this idempotency key is already in progress'})
        mock_charge.assert_called_once()
        self.assertEqual(Payment.objects.count(), 1)

        replay = self.client.post(self.url, data, format='json')
        self.assertEqual(replay.data, response.data)

    def test_declined_payment_frees_idempotency_key(self):
        """Test a key whose payment was declined can be used again"""
        data = {'item_ids': [self.item_a.id], 'table_number': '12', 'tip_p': 13, 'idempotency_key': 'checkout-44'}

        response = self.client.post(self.url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)
        self.assertIsNone(self.redis.get('payment_result:checkout-44'))

        data['tip_p'] = 0
        response = self.client.post(self.url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.item_a.refresh_from_db()
        self.assertTrue(self.item_a.is_paid)

    def test_items_paid_elsewhere_during_charge(self):
        """Test a charge whose items were settled mid-charge is refunded and recorded"""
        def charge_after_other_payment(gateway, amount_p, currency='egp'):
            settlement.settle_items(self.table, [self.item_a.id])
            return real_charge(gateway, amount_p, currency=currency)

        data = {'item_ids': [self.item_a.id], 'table_number': '12'}
        with patch.object(MockPaymentGateway, 'charge', autospec=True, side_effect=charge_after_other_payment):
            response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data, {'error': 'Selected items are already paid'})

        payment = Payment.objects.get()
        self.assertEqual(payment.status, Payment.REFUNDED)
        self.assertEqual(payment.amount_p, 12600)
        self.assertEqual(payment.failure_reason, 'Selected items are already paid')
        self.assertFalse(payment.settled_items.exists())

    def test_some_items_paid_elsewhere_during_charge(self):
        """Test a charge is never settled against fewer items than were quoted"""
        def charge_after_other_payment(gateway, amount_p, currency='egp'):
            settlement.settle_items(self.table, [self.item_b.id])
            return real_charge(gateway, amount_p, currency=currency)

        data = {'item_ids': [self.item_a.id, self.item_b.id], 'table_number': '12'}
        with patch.object(MockPaymentGateway, 'charge', autospec=True, side_effect=charge_after_other_payment):
            response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data, {'error': 'Selected items changed while paying'})

        self.item_a.refresh_from_db()
        self.assertFalse(self.item_a.is_paid)
        payment = Payment.objects.get()
        self.assertEqual(payment.status, Payment.REFUNDED)
        self.assertEqual(payment.amount_p, 18900)
        self.assertEqual(Order.objects.filter(payment_ref=payment.provider_ref).count(), 0)
