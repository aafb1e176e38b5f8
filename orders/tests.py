from datetime import timedelta
from decimal import Decimal
from io import StringIO
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status
from tableside.exceptions import Conflict, InvalidRequest, NotFound
from .models import Restaurant, Table, MenuItem, Order, OrderItem
from .services import calculate_charges, place_order, get_table
from .queries import current_session_order_ids, aggregate_by_menu_item
from . import settlement


def create_dining_room(tax_rate=Decimal('0.14'), service_charge_rate=Decimal('0.12'), table_number='12'):
    """Restaurant with one table and two menu items priced 50.00 each"""
    restaurant = Restaurant.objects.create(
        name="Test Restaurant",
        tax_rate=tax_rate,
        service_charge_rate=service_charge_rate
    )
    table = Table.objects.create(restaurant=restaurant, number=table_number, capacity=4)
    soup = MenuItem.objects.create(
        restaurant=restaurant,
        name="Lobster Bisque",
        category="Appetizers",
        price_p=5000,  # EGP 50.00
        image="https://example.com/bisque.jpg"
    )
    salad = MenuItem.objects.create(
        restaurant=restaurant,
        name="Caesar Salad",
        category="Appetizers",
        price_p=5000  # EGP 50.00
    )
    return restaurant, table, soup, salad


class ChargeCalculationTests(TestCase):
    """Test tax + service charge logic"""

    def setUp(self):
        self.restaurant, self.table, self.soup, self.salad = create_dining_room()

    def test_total_calculation(self):
        """Test total = subtotal + tax + service charge + tip"""
        charges = calculate_charges(self.restaurant, 15000, tip_p=500)

        # Tax = 14% of 150.00 = 21.00, service = 12% of 150.00 = 18.00
        self.assertEqual(charges['subtotal_p'], 15000)
        self.assertEqual(charges['tax_p'], 2100)
        self.assertEqual(charges['service_charge_p'], 1800)
        self.assertEqual(charges['tip_p'], 500)
        self.assertEqual(charges['total_p'], 19400)

    def test_charges_truncate_to_whole_piastres(self):
        """Test charges round down to whole piastres"""
        charges = calculate_charges(self.restaurant, 1005)

        # 14% of 1005 = 140.7, 12% of 1005 = 120.6
        self.assertEqual(charges['tax_p'], 140)
        self.assertEqual(charges['service_charge_p'], 120)
        self.assertEqual(charges['total_p'], 1005 + 140 + 120)


class OrderPlacementTests(TestCase):
    """Test placing orders against a table"""

    def setUp(self):
        self.restaurant, self.table, self.soup, self.salad = create_dining_room()

    def test_place_order(self):
        """Test order totals come from catalog prices and the table becomes occupied"""
        order = place_order(self.table, [
            {'menu_item_id': self.soup.id, 'quantity': 2},
            {'menu_item_id': self.salad.id, 'quantity': 1, 'notes': 'No croutons'},
        ], tip_p=1000)

        self.assertTrue(order.order_number.startswith('ORD-'))
        self.assertEqual(order.subtotal_p, 15000)
        self.assertEqual(order.total_p, 15000 + 2100 + 1800 + 1000)
        self.assertEqual(order.status, Order.PENDING)
        self.assertEqual(order.payment_status, Order.PAYMENT_PENDING)

        soup_line = order.items.get(menu_item=self.soup)
        self.assertEqual(soup_line.unit_price_p, 5000)
        self.assertEqual(soup_line.total_price_p, 10000)
        self.assertFalse(soup_line.is_paid)
        self.assertEqual(order.items.get(menu_item=self.salad).notes, 'No croutons')

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.OCCUPIED)

    def test_order_numbers_are_unique(self):
        """Test every order gets its own order number"""
        first = place_order(self.table, [{'menu_item_id': self.soup.id, 'quantity': 1}])
        second = place_order(self.table, [{'menu_item_id': self.soup.id, 'quantity': 1}])

        self.assertNotEqual(first.order_number, second.order_number)

    def test_empty_order_rejected(self):
        """Test an order needs at least one item"""
        with self.assertRaises(InvalidRequest):
            place_order(self.table, [])

    def test_unavailable_menu_item_rejected(self):
        """Test unavailable menu items cannot be ordered"""
        self.salad.is_available = False
        self.salad.save()

        with self.assertRaises(InvalidRequest):
            place_order(self.table, [{'menu_item_id': self.salad.id, 'quantity': 1}])
        self.assertEqual(Order.objects.count(), 0)

    def test_get_table_unknown_number(self):
        """Test looking up a missing table"""
        with self.assertRaises(NotFound):
            get_table('99')


class SettlementTests(TestCase):
    """Test unpaid/paid item tracking and partial payments"""

    def setUp(self):
        self.restaurant, self.table, self.soup, self.salad = create_dining_room()

        # Table 12: A = 2 x soup (100.00), B = 1 x salad (50.00)
        self.order = place_order(self.table, [
            {'menu_item_id': self.soup.id, 'quantity': 2},
            {'menu_item_id': self.salad.id, 'quantity': 1},
        ])
        self.item_a = self.order.items.get(menu_item=self.soup)
        self.item_b = self.order.items.get(menu_item=self.salad)

    def _session_total(self):
        return sum(
            item.total_price_p
            for item in OrderItem.objects.filter(order_id__in=current_session_order_ids(self.table))
        )

    def test_unpaid_items_aggregated_by_menu_item(self):
        """Test the same menu item from different orders collapses into one row"""
        second = place_order(self.table, [{'menu_item_id': self.soup.id, 'quantity': 1}])
        extra_soup = second.items.get()

        rows = settlement.get_unpaid_items(self.table)

        self.assertEqual(len(rows), 2)
        soup_row = next(row for row in rows if row['menu_item_id'] == self.soup.id)
        self.assertEqual(soup_row['quantity'], 3)
        self.assertEqual(soup_row['total_price_p'], 15000)
        self.assertEqual(soup_row['price_p'], 5000)
        self.assertEqual(soup_row['name'], 'Lobster Bisque')
        self.assertEqual(soup_row['image'], 'https://example.com/bisque.jpg')
        self.assertEqual(soup_row['order_item_ids'], [self.item_a.id, extra_soup.id])
        self.assertEqual(soup_row['order_item_id'], self.item_a.id)

    def test_partial_payment_scenario(self):
        """Test paying A then B moves each item from unpaid to paid and finally frees the table"""
        settlement.settle_items(self.table, [self.item_a.id])

        unpaid = settlement.get_unpaid_items(self.table)
        paid, paid_subtotal = settlement.get_paid_items(self.table)
        self.assertEqual([row['menu_item_id'] for row in unpaid], [self.salad.id])
        self.assertEqual(unpaid[0]['total_price_p'], 5000)
        self.assertEqual([row['menu_item_id'] for row in paid], [self.soup.id])
        self.assertEqual(paid[0]['total_price_p'], 10000)
        self.assertIsNotNone(paid[0]['paid_at'])
        self.assertEqual(paid_subtotal, 10000)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.OCCUPIED)

        settlement.settle_items(self.table, [self.item_b.id])

        self.assertEqual(settlement.get_unpaid_items(self.table), [])
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.AVAILABLE)

    def test_unpaid_plus_paid_equals_session_total(self):
        """Test unpaid and paid views always add up to the session's item total"""
        place_order(self.table, [{'menu_item_id': self.salad.id, 'quantity': 3}])
        settlement.settle_items(self.table, [self.item_a.id])

        unpaid_total = sum(row['total_price_p'] for row in settlement.get_unpaid_items(self.table))
        _, paid_total = settlement.get_paid_items(self.table)

        self.assertEqual(unpaid_total + paid_total, self._session_total())
        self.assertEqual(unpaid_total + paid_total, 10000 + 5000 + 15000)

    def test_partial_payment_creates_receipt_order(self):
        """Test the paid subset is recorded as a new confirmed order"""
        receipt, items = settlement.settle_items(
            self.table, [self.item_a.id], tip_p=500, payment_method='card', payment_ref='pi_test1234'
        )

        self.assertNotEqual(receipt.id, self.order.id)
        self.assertEqual(receipt.table, self.table)
        self.assertEqual(receipt.subtotal_p, 10000)
        self.assertEqual(receipt.tax_p, 1400)
        self.assertEqual(receipt.service_charge_p, 1200)
        self.assertEqual(receipt.tip_p, 500)
        self.assertEqual(receipt.total_p, 13100)
        self.assertEqual(receipt.status, Order.CONFIRMED)
        self.assertEqual(receipt.payment_status, Order.PAYMENT_COMPLETED)
        self.assertEqual(receipt.payment_ref, 'pi_test1234')
        self.assertEqual([item.id for item in items], [self.item_a.id])

        # The paid item still belongs to the original order
        self.item_a.refresh_from_db()
        self.assertTrue(self.item_a.is_paid)
        self.assertEqual(self.item_a.order, self.order)
        self.assertFalse(receipt.items.exists())

        # Original order stays open while B is unpaid
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PENDING)

    def test_last_item_completes_every_order(self):
        """Test paying the last unpaid item completes all orders and frees the table"""
        second = place_order(self.table, [{'menu_item_id': self.soup.id, 'quantity': 1}])

        settlement.settle_items(self.table, [self.item_a.id, self.item_b.id])
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.OCCUPIED)

        settlement.settle_items(self.table, [second.items.get().id])

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.AVAILABLE)
        for order in Order.objects.filter(table=self.table):
            self.assertEqual(order.payment_status, Order.PAYMENT_COMPLETED)
            self.assertEqual(order.status, Order.CONFIRMED)

    def test_partial_payment_spanning_orders(self):
        """Test one payment can cover items of several orders"""
        second = place_order(self.table, [{'menu_item_id': self.salad.id, 'quantity': 2}])
        second_item = second.items.get()

        receipt, items = settlement.settle_items(self.table, [self.item_b.id, second_item.id])

        self.assertEqual(receipt.subtotal_p, 15000)
        self.assertEqual(len(items), 2)
        self.assertEqual(
            [row['menu_item_id'] for row in settlement.get_unpaid_items(self.table)],
            [self.soup.id]
        )

    def test_items_of_another_table_rejected(self):
        """Test order items of another table cannot be paid from this one"""
        other_table = Table.objects.create(restaurant=self.restaurant, number='7')
        other_order = place_order(other_table, [{'menu_item_id': self.soup.id, 'quantity': 1}])

        with self.assertRaises(InvalidRequest):
            settlement.resolve_payable_items(self.table, [self.item_a.id, other_order.items.get().id])

        with self.assertRaises(InvalidRequest):
            settlement.table_for_items([self.item_a.id, other_order.items.get().id])

        self.assertEqual(settlement.table_for_items([self.item_a.id, self.item_b.id]), self.table)

    def test_empty_item_list_rejected(self):
        """Test a partial payment needs at least one item"""
        with self.assertRaises(InvalidRequest):
            settlement.settle_items(self.table, [])
        with self.assertRaises(InvalidRequest):
            settlement.resolve_payable_items(self.table, [])

    def test_repaying_paid_items_conflicts(self):
        """Test already paid items are not settled or counted twice"""
        settlement.settle_items(self.table, [self.item_a.id])
        receipts = Order.objects.count()

        with self.assertRaises(Conflict):
            settlement.resolve_payable_items(self.table, [self.item_a.id])
        with self.assertRaises(Conflict):
            settlement.settle_items(self.table, [self.item_a.id])

        self.assertEqual(Order.objects.count(), receipts)

    def test_mixed_paid_and_unpaid_only_settles_unpaid(self):
        """Test only still-unpaid items count towards a payment"""
        settlement.settle_items(self.table, [self.item_a.id])

        charges = settlement.quote_items(self.table, [self.item_a.id, self.item_b.id])
        self.assertEqual(charges['subtotal_p'], 5000)

        receipt, items = settlement.settle_items(self.table, [self.item_a.id, self.item_b.id])
        self.assertEqual(receipt.subtotal_p, 5000)
        self.assertEqual([item.id for item in items], [self.item_b.id])

    def test_full_order_payment(self):
        """Test paying an order in full marks all of its items paid"""
        order = settlement.settle_order(self.order.id, payment_method='card', payment_ref='pi_full0001')

        self.assertEqual(order.payment_status, Order.PAYMENT_COMPLETED)
        self.assertEqual(order.status, Order.CONFIRMED)
        self.assertEqual(order.payment_ref, 'pi_full0001')
        self.assertFalse(order.items.filter(is_paid=False).exists())
        self.assertEqual(order.items.filter(paid_at__isnull=True).count(), 0)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.AVAILABLE)

    def test_full_order_payment_leaves_other_orders_open(self):
        """Test the table stays occupied while another order is unpaid"""
        place_order(self.table, [{'menu_item_id': self.salad.id, 'quantity': 1}])

        settlement.settle_order(self.order.id)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.OCCUPIED)
        self.assertEqual(len(settlement.get_unpaid_items(self.table)), 1)

    def test_full_order_payment_twice_conflicts(self):
        """Test a completed order cannot be paid again"""
        settlement.settle_order(self.order.id)

        with self.assertRaises(Conflict):
            settlement.settle_order(self.order.id)
        with self.assertRaises(Conflict):
            settlement.get_payable_order(self.order.id)

    def test_unknown_order(self):
        """Test paying a missing order"""
        with self.assertRaises(NotFound):
            settlement.settle_order(999999)

    def test_failed_orders_excluded_from_session(self):
        """Test items of failed orders are neither unpaid nor paid"""
        failed = place_order(self.table, [{'menu_item_id': self.salad.id, 'quantity': 4}])
        failed.payment_status = Order.PAYMENT_FAILED
        failed.save()

        self.assertNotIn(failed.id, current_session_order_ids(self.table))
        unpaid_total = sum(row['total_price_p'] for row in settlement.get_unpaid_items(self.table))
        self.assertEqual(unpaid_total, 15000)

        with self.assertRaises(InvalidRequest):
            settlement.resolve_payable_items(self.table, [failed.items.get().id])

    def test_paid_items_most_recent_first(self):
        """Test paid items are listed by payment time, newest first"""
        # Keep one line unpaid so the order stays in the current session
        OrderItem.objects.create(
            order=self.order, menu_item=self.salad, quantity=1, unit_price_p=5000, total_price_p=5000
        )
        settlement.settle_items(self.table, [self.item_b.id])
        settlement.settle_items(self.table, [self.item_a.id])

        paid, _ = settlement.get_paid_items(self.table)

        self.assertEqual([row['menu_item_id'] for row in paid], [self.soup.id, self.salad.id])


class AggregationTests(TestCase):
    """Test the per-menu-item aggregation helper"""

    def test_aggregate_keeps_latest_paid_at(self):
        restaurant, table, soup, salad = create_dining_room()
        order = place_order(table, [
            {'menu_item_id': soup.id, 'quantity': 1},
            {'menu_item_id': soup.id, 'quantity': 2},
        ])
        first, second = order.items.order_by('id')
        now = timezone.now()
        second.paid_at = now
        first.paid_at = now - timedelta(minutes=5)

        rows = aggregate_by_menu_item([second, first], with_paid_at=True)

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['quantity'], 3)
        self.assertEqual(rows[0]['paid_at'], now)
        self.assertNotIn('order_item_ids', rows[0])


class TableMaintenanceTests(TestCase):
    """Test operator clear/reset of a table"""

    def setUp(self):
        self.restaurant, self.table, self.soup, self.salad = create_dining_room()
        self.order = place_order(self.table, [
            {'menu_item_id': self.soup.id, 'quantity': 2},
            {'menu_item_id': self.salad.id, 'quantity': 1},
        ])

    def test_clear_table(self):
        """Test clearing deletes all orders and items and frees the table"""
        settlement.settle_items(self.table, [self.order.items.first().id])

        deleted_items, deleted_orders = settlement.clear_table(self.table)

        self.assertEqual(deleted_items, 2)
        self.assertEqual(deleted_orders, 2)  # original order + receipt
        self.assertEqual(settlement.get_unpaid_items(self.table), [])
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.AVAILABLE)
        self.assertFalse(Order.objects.filter(table=self.table).exists())

    def test_reset_table(self):
        """Test resetting marks everything unpaid and the table occupied"""
        settlement.settle_order(self.order.id)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.AVAILABLE)

        count = settlement.reset_table(self.table)

        self.assertEqual(count, 2)
        paid, subtotal = settlement.get_paid_items(self.table)
        self.assertEqual(paid, [])
        self.assertEqual(subtotal, 0)
        self.assertEqual(len(settlement.get_unpaid_items(self.table)), 2)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PENDING)
        self.assertEqual(self.order.status, Order.PENDING)
        self.assertFalse(OrderItem.objects.filter(paid_at__isnull=False).exists())
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.OCCUPIED)


class TableAPITests(APITestCase):
    """Test table, order and settlement read endpoints"""

    def setUp(self):
        self.restaurant, self.table, self.soup, self.salad = create_dining_room()
        self.order = place_order(self.table, [
            {'menu_item_id': self.soup.id, 'quantity': 2},
            {'menu_item_id': self.salad.id, 'quantity': 1},
        ])

    def test_get_table(self):
        """Test table details include the restaurant's rates"""
        url = reverse('get_table', kwargs={'table_number': '12'})

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['table']['status'], Table.OCCUPIED)
        self.assertEqual(Decimal(response.data['restaurant']['tax_rate']), Decimal('0.14'))

    def test_unknown_table(self):
        """Test missing tables return 404 with an error message"""
        url = reverse('unpaid_items', kwargs={'table_number': '99'})

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Table not found'})

    def test_unpaid_items(self):
        """Test unpaid items are listed and never cached"""
        url = reverse('unpaid_items', kwargs={'table_number': '12'})

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['table_number'], '12')
        self.assertEqual(len(response.data['items']), 2)
        self.assertIn('order_item_ids', response.data['items'][0])
        self.assertIn('no-store', response['Cache-Control'])

    def test_paid_items(self):
        """Test paid items carry a subtotal"""
        settlement.settle_items(self.table, [self.order.items.get(menu_item=self.soup).id])
        url = reverse('paid_items', kwargs={'table_number': '12'})

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['subtotal_p'], 10000)
        self.assertEqual(response.data['items'][0]['name'], 'Lobster Bisque')
        self.assertIn('no-store', response['Cache-Control'])

    def test_menu(self):
        """Test only available menu items are listed"""
        self.salad.is_available = False
        self.salad.save()

        response = self.client.get(reverse('menu'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['name'] for item in response.data], ['Lobster Bisque'])

    def test_create_order(self):
        """Test placing an order through the API"""
        url = reverse('create_order')
        data = {
            'table_number': '12',
            'items': [{'menu_item_id': self.salad.id, 'quantity': 2}],
            'tip_p': 300,
        }

        response = self.client.post(url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['subtotal_p'], 10000)
        self.assertEqual(response.data['total_p'], 10000 + 1400 + 1200 + 300)
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['table_number'], '12')

    def test_create_order_validation(self):
        """Test invalid orders are rejected with an error message"""
        url = reverse('create_order')

        response = self.client.post(url, {'table_number': '12', 'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
        self.assertIn('details', response.data)

        response = self.client.post(url, {
            'table_number': '12',
            'items': [{'menu_item_id': self.salad.id, 'quantity': 0}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_get_order(self):
        """Test fetching an order for the receipt page"""
        url = reverse('get_order', kwargs={'order_id': self.order.id})

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order_number'], self.order.order_number)
        self.assertEqual(len(response.data['items']), 2)

    def test_get_missing_order(self):
        url = reverse('get_order', kwargs={'order_id': 999999})

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('error', response.data)


class OperatorAPITests(APITestCase):
    """Test operator-only endpoints"""

    def setUp(self):
        self.restaurant, self.table, self.soup, self.salad = create_dining_room()
        self.order = place_order(self.table, [
            {'menu_item_id': self.soup.id, 'quantity': 2},
            {'menu_item_id': self.salad.id, 'quantity': 1},
        ])
        # Add API key to all requests
        self.client.defaults['HTTP_X_API_KEY'] = 'demo'

    def test_operator_key_required(self):
        """Test clear-table is refused without the API key"""
        self.client.defaults.pop('HTTP_X_API_KEY')
        url = reverse('clear_table', kwargs={'table_number': '12'})

        response = self.client.post(url, {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)
        self.assertTrue(Order.objects.filter(table=self.table).exists())

    def test_invalid_operator_key(self):
        self.client.defaults['HTTP_X_API_KEY'] = 'wrong'
        url = reverse('reset_table', kwargs={'table_number': '12'})

        response = self.client.post(url, {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_clear_table(self):
        url = reverse('clear_table', kwargs={'table_number': '12'})

        response = self.client.post(url, {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['deleted_items'], 2)
        self.assertEqual(response.data['deleted_orders'], 1)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.AVAILABLE)

    def test_reset_table(self):
        settlement.settle_order(self.order.id)
        url = reverse('reset_table', kwargs={'table_number': '12'})

        response = self.client.post(url, {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.OCCUPIED)

    def test_tables_with_orders(self):
        """Test the overview shows unpaid balances per table"""
        Table.objects.create(restaurant=self.restaurant, number='3')
        settlement.settle_items(self.table, [self.order.items.get(menu_item=self.salad).id])
        url = reverse('tables_with_orders')

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        by_number = {row['table']['number']: row for row in response.data}
        self.assertEqual(by_number['12']['total_amount_p'], 10000)
        self.assertFalse(by_number['12']['is_paid'])
        self.assertEqual(len(by_number['12']['orders']), 1)
        self.assertEqual(by_number['12']['orders'][0]['unpaid_subtotal_p'], 10000)
        self.assertEqual(len(by_number['12']['orders'][0]['items']), 1)
        self.assertTrue(by_number['3']['is_paid'])
        self.assertEqual(by_number['3']['total_amount_p'], 0)


class SeedCommandTests(TestCase):

    def test_seed_restaurant(self):
        """Test seeding creates the restaurant, tables and menu once"""
        call_command('seed_restaurant', '--tables', '3', stdout=StringIO())
        call_command('seed_restaurant', '--tables', '3', stdout=StringIO())

        restaurant = Restaurant.objects.get()
        self.assertEqual(restaurant.name, 'Fine Dining Restaurant')
        self.assertEqual(restaurant.tax_rate, Decimal('0.14'))
        self.assertEqual(list(Table.objects.values_list('number', flat=True)), ['1', '2', '3'])
        self.assertEqual(MenuItem.objects.count(), 8)
