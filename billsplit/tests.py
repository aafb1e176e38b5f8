from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status
from orders.models import Order, OrderItem, Table
from orders.services import place_order
from orders.tests import create_dining_room
from tableside.exceptions import Conflict, InvalidRequest, NotFound
from .models import BillSplit, Person
from .qr import person_url, render_qr_data_url
from .serializers import BillSplitSerializer
from . import sessions


class QRCodeTests(TestCase):

    @override_settings(PUBLIC_BASE_URL='https://dine.example.com/')
    def test_person_url(self):
        """Test QR codes point at the person's page on the public host"""
        self.assertEqual(
            person_url('5-1718000000000-ab12cd34', 3),
            'https://dine.example.com/person/5-1718000000000-ab12cd34/3'
        )

    def test_render_qr_data_url(self):
        data_url = render_qr_data_url('https://dine.example.com/person/abc/1')

        self.assertTrue(data_url.startswith('data:image/png;base64,'))
        self.assertNotEqual(data_url, render_qr_data_url('https://dine.example.com/person/abc/2'))


class SessionManagerTests(TestCase):
    """Test creating, resizing and completing bill splits"""

    def setUp(self):
        self.restaurant, self.table, self.soup, self.salad = create_dining_room()

    def test_create_session(self):
        """Test a split of 4 creates persons 1-4 with their own QR codes"""
        bill_split = sessions.create_session(self.table, 4)

        persons = list(bill_split.persons.all())
        self.assertEqual([person.person_number for person in persons], [1, 2, 3, 4])
        self.assertEqual(bill_split.total_people, 4)
        self.assertEqual(bill_split.split_type, BillSplit.EQUAL)
        self.assertTrue(bill_split.is_active)
        self.assertTrue(bill_split.session_id.startswith(f'{self.table.id}-'))

        qr_codes = {person.qr_code for person in persons}
        self.assertEqual(len(qr_codes), 4)
        for person in persons:
            self.assertTrue(person.qr_code.startswith('data:image/png;base64,'))
            self.assertEqual(person.total_amount_p, 0)
            self.assertEqual(person.state, Person.CREATED)

    def test_create_session_retires_active_split(self):
        """Test starting a new split deactivates the old one without deleting it"""
        first = sessions.create_session(self.table, 2)
        second = sessions.create_session(self.table, 3)

        first.refresh_from_db()
        self.assertFalse(first.is_active)
        self.assertTrue(second.is_active)
        self.assertNotEqual(first.session_id, second.session_id)
        self.assertEqual(first.persons.count(), 2)
        self.assertEqual(sessions.get_active_split(self.table), second)

    def test_invalid_total_people(self):
        """Test head counts outside 1-20 are rejected"""
        with self.assertRaises(InvalidRequest):
            sessions.create_session(self.table, 0)
        with self.assertRaises(InvalidRequest):
            sessions.create_session(self.table, 21)
        with self.assertRaises(InvalidRequest):
            sessions.create_session(self.table, 2, split_type='random')
        self.assertFalse(BillSplit.objects.exists())

    def test_create_itemized_session(self):
        """Test an itemized split keeps the unpaid items diners can pick from"""
        order = place_order(self.table, [
            {'menu_item_id': self.soup.id, 'quantity': 1},
            {'menu_item_id': self.salad.id, 'quantity': 1},
        ])
        item_ids = sorted(order.items.values_list('id', flat=True))

        bill_split = sessions.create_session(self.table, 2, BillSplit.ITEMIZED, list(reversed(item_ids)))

        self.assertEqual(bill_split.split_type, BillSplit.ITEMIZED)
        bill_split.refresh_from_db()
        self.assertEqual(bill_split.available_items, item_ids)

    def test_itemized_session_validates_available_items(self):
        """Test itemized splits need unpaid items of this table"""
        order = place_order(self.table, [{'menu_item_id': self.soup.id, 'quantity': 1}])
        item = order.items.get()
        other_table = Table.objects.create(restaurant=self.restaurant, number='7')
        other_item = place_order(other_table, [{'menu_item_id': self.salad.id, 'quantity': 1}]).items.get()

        with self.assertRaisesMessage(InvalidRequest, 'Available items required for itemized split'):
            sessions.create_session(self.table, 2, BillSplit.ITEMIZED)
        with self.assertRaises(InvalidRequest):
            sessions.create_session(self.table, 2, BillSplit.ITEMIZED, [item.id, other_item.id])

        OrderItem.objects.filter(pk=item.pk).update(is_paid=True)
        with self.assertRaises(InvalidRequest):
            sessions.create_session(self.table, 2, BillSplit.ITEMIZED, [item.id])
        self.assertFalse(BillSplit.objects.exists())

    def test_equal_split_has_no_available_items(self):
        order = place_order(self.table, [{'menu_item_id': self.soup.id, 'quantity': 1}])

        bill_split = sessions.create_session(self.table, 2, BillSplit.EQUAL, [order.items.get().id])

        self.assertIsNone(bill_split.available_items)

    def test_active_split_serializes_without_extra_queries(self):
        """Test person states come from the loaded split, not one query per person"""
        bill_split = sessions.create_session(self.table, 4)
        sessions.place_person_order(bill_split.session_id, 2, [{'menu_item_id': self.soup.id, 'quantity': 1}])
        sessions.complete_person(bill_split.session_id, 3)

        active = sessions.get_active_split(self.table)
        with self.assertNumQueries(0):
            data = BillSplitSerializer(active).data

        self.assertEqual(
            [person['state'] for person in data['persons']],
            [Person.CREATED, Person.ORDERING, Person.COMPLETED, Person.CREATED]
        )
        self.assertEqual(data['table_number'], '12')

    def test_person_with_orders_but_no_total_is_ordering(self):
        bill_split = sessions.create_session(self.table, 2)
        sessions.place_person_order(bill_split.session_id, 1, [{'menu_item_id': self.soup.id, 'quantity': 1}])
        Person.objects.filter(bill_split=bill_split, person_number=1).update(total_amount_p=0)

        persons = list(sessions.get_active_split(self.table).persons.all())

        self.assertEqual(persons[0].state, Person.ORDERING)
        self.assertEqual(persons[1].state, Person.CREATED)
        self.assertFalse(persons[0].is_removable())

    def test_resize_up_keeps_existing_persons(self):
        """Test growing a split only adds the missing person numbers"""
        bill_split = sessions.create_session(self.table, 4)
        before = {person.person_number: (person.id, person.qr_code) for person in bill_split.persons.all()}

        bill_split, blocked = sessions.resize_session(bill_split.session_id, 6)

        self.assertEqual(blocked, [])
        self.assertEqual(bill_split.total_people, 6)
        after = {person.person_number: (person.id, person.qr_code) for person in bill_split.persons.all()}
        self.assertEqual(sorted(after), [1, 2, 3, 4, 5, 6])
        for number in range(1, 5):
            self.assertEqual(after[number], before[number])

    def test_resize_down_removes_idle_persons(self):
        bill_split = sessions.create_session(self.table, 6)

        bill_split, blocked = sessions.resize_session(bill_split.session_id, 4)

        self.assertEqual(blocked, [])
        self.assertEqual(bill_split.total_people, 4)
        self.assertEqual(
            list(bill_split.persons.values_list('person_number', flat=True)),
            [1, 2, 3, 4]
        )

    def test_resize_down_keeps_persons_who_ordered(self):
        """Test persons with orders survive a shrink and are reported back"""
        bill_split = sessions.create_session(self.table, 6)
        sessions.place_person_order(bill_split.session_id, 5, [{'menu_item_id': self.soup.id, 'quantity': 1}])

        bill_split, blocked = sessions.resize_session(bill_split.session_id, 4)

        self.assertEqual(blocked, [5])
        self.assertEqual(bill_split.total_people, 4)
        self.assertEqual(
            list(bill_split.persons.values_list('person_number', flat=True)),
            [1, 2, 3, 4, 5]
        )

        # Growing again only creates the number that is actually missing
        bill_split, blocked = sessions.resize_session(bill_split.session_id, 6)
        self.assertEqual(
            list(bill_split.persons.values_list('person_number', flat=True)),
            [1, 2, 3, 4, 5, 6]
        )

    def test_resize_inactive_split(self):
        """Test only active splits can be resized"""
        first = sessions.create_session(self.table, 2)
        sessions.create_session(self.table, 2)

        with self.assertRaises(NotFound):
            sessions.resize_session(first.session_id, 4)
        with self.assertRaises(NotFound):
            sessions.resize_session('no-such-session', 4)

    def test_place_person_order(self):
        """Test a person's order is linked to them and adds to their total"""
        bill_split = sessions.create_session(self.table, 2)

        order, person = sessions.place_person_order(
            bill_split.session_id, 1, [{'menu_item_id': self.soup.id, 'quantity': 2}]
        )
        second, person = sessions.place_person_order(
            bill_split.session_id, 1, [{'menu_item_id': self.salad.id, 'quantity': 1}]
        )

        self.assertEqual(order.person, person)
        self.assertEqual(order.bill_split, bill_split)
        self.assertEqual(order.table, self.table)
        self.assertEqual(person.total_amount_p, order.total_p + second.total_p)
        self.assertEqual(person.state, Person.ORDERING)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.OCCUPIED)

    def test_place_person_order_rejected_when_closed(self):
        """Test completed persons and retired splits cannot order"""
        bill_split = sessions.create_session(self.table, 2)
        sessions.complete_person(bill_split.session_id, 1)

        with self.assertRaises(Conflict):
            sessions.place_person_order(bill_split.session_id, 1, [{'menu_item_id': self.soup.id, 'quantity': 1}])

        sessions.create_session(self.table, 2)
        with self.assertRaises(Conflict):
            sessions.place_person_order(bill_split.session_id, 2, [{'menu_item_id': self.soup.id, 'quantity': 1}])

        self.assertFalse(Order.objects.exists())

    def test_unknown_person(self):
        bill_split = sessions.create_session(self.table, 2)

        with self.assertRaises(NotFound):
            sessions.get_person(bill_split.session_id, 3)
        with self.assertRaises(NotFound):
            sessions.get_person_context('no-such-session', 1)

    def test_complete_person(self):
        """Test completing a person confirms their orders without settling items"""
        bill_split = sessions.create_session(self.table, 2)
        order, _ = sessions.place_person_order(
            bill_split.session_id, 1, [{'menu_item_id': self.soup.id, 'quantity': 2}]
        )

        person = sessions.complete_person(bill_split.session_id, 1, payment_method='card', payment_ref='pi_person01')

        self.assertTrue(person.is_completed)
        self.assertIsNotNone(person.completed_at)
        self.assertEqual(person.state, Person.COMPLETED)

        order.refresh_from_db()
        self.assertEqual(order.payment_status, Order.PAYMENT_COMPLETED)
        self.assertEqual(order.status, Order.CONFIRMED)
        self.assertEqual(order.payment_method, 'card')
        self.assertEqual(order.payment_ref, 'pi_person01')

        # Item paid flags and the table are left to the settlement paths
        self.assertFalse(OrderItem.objects.filter(order=order, is_paid=True).exists())
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.OCCUPIED)

    def test_complete_person_leaves_others_open(self):
        """Test the table stays occupied while another person still owes"""
        bill_split = sessions.create_session(self.table, 2)
        sessions.place_person_order(bill_split.session_id, 1, [{'menu_item_id': self.soup.id, 'quantity': 1}])
        other, _ = sessions.place_person_order(
            bill_split.session_id, 2, [{'menu_item_id': self.salad.id, 'quantity': 1}]
        )

        sessions.complete_person(bill_split.session_id, 1)

        other.refresh_from_db()
        self.assertEqual(other.payment_status, Order.PAYMENT_PENDING)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, Table.OCCUPIED)

    def test_complete_person_is_idempotent(self):
        """Test completing twice keeps the first completion"""
        bill_split = sessions.create_session(self.table, 2)
        first = sessions.complete_person(bill_split.session_id, 2, payment_ref='pi_first')

        again = sessions.complete_person(bill_split.session_id, 2, payment_ref='pi_second')

        self.assertTrue(again.is_completed)
        self.assertEqual(again.completed_at, first.completed_at)

    def test_person_context(self):
        bill_split = sessions.create_session(self.table, 3)
        order, _ = sessions.place_person_order(
            bill_split.session_id, 2, [{'menu_item_id': self.soup.id, 'quantity': 1}]
        )

        context = sessions.get_person_context(bill_split.session_id, 2)

        self.assertEqual(context['bill_split'], bill_split)
        self.assertEqual(context['table'], self.table)
        self.assertEqual(context['restaurant'], self.restaurant)
        self.assertEqual(context['person'].person_number, 2)
        self.assertEqual(list(context['person'].orders.all()), [order])


class BillSplitAPITests(APITestCase):
    """Test the bill split endpoints"""

    def setUp(self):
        self.restaurant, self.table, self.soup, self.salad = create_dining_room()
        place_order(self.table, [{'menu_item_id': self.soup.id, 'quantity': 2}])

    def test_create_bill_split(self):
        url = reverse('bill_split', kwargs={'table_number': '12'})

        response = self.client.post(url, {'total_people': 4, 'split_type': 'equal'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        bill_split = response.data['bill_split']
        self.assertEqual(bill_split['total_people'], 4)
        self.assertEqual(bill_split['table_number'], '12')
        self.assertEqual([person['person_number'] for person in bill_split['persons']], [1, 2, 3, 4])
        self.assertTrue(bill_split['persons'][0]['qr_code'].startswith('data:image/png;base64,'))


    def test_create_itemized_bill_split(self):
        url = reverse('bill_split', kwargs={'table_number': '12'})
        item_id = OrderItem.objects.get().id

        response = self.client.post(url, {'total_people': 2, 'split_type': 'itemized'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Available items required for itemized split')

        response = self.client.post(
            url, {'total_people': 2, 'split_type': 'itemized', 'available_items': [item_id]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['bill_split']['split_type'], 'itemized')
        self.assertEqual(response.data['bill_split']['available_items'], [item_id])
    def test_create_bill_split_invalid_people(self):
        """Test an out of range head count is a 400"""
        url = reverse('bill_split', kwargs={'table_number': '12'})

        response = self.client.post(url, {'total_people': 25}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid number of people (1-20)')

        response = self.client.post(url, {'total_people': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_create_bill_split_unknown_table(self):
        url = reverse('bill_split', kwargs={'table_number': '99'})

        response = self.client.post(url, {'total_people': 2}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_get_bill_split(self):
        url = reverse('bill_split', kwargs={'table_number': '12'})

        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['bill_split'])

        bill_split = sessions.create_session(self.table, 2)
        response = self.client.get(url)
        self.assertEqual(response.data['bill_split']['session_id'], bill_split.session_id)

    def test_resize_bill_split(self):
        """Test the resize response lists persons that could not be removed"""
        bill_split = sessions.create_session(self.table, 3)
        sessions.place_person_order(bill_split.session_id, 3, [{'menu_item_id': self.salad.id, 'quantity': 1}])
        url = reverse('bill_split', kwargs={'table_number': '12'})

        response = self.client.patch(url, {'total_people': 2}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['blocked_person_numbers'], [3])
        self.assertEqual(response.data['bill_split']['total_people'], 2)
        self.assertEqual(len(response.data['bill_split']['persons']), 3)

    def test_resize_without_active_split(self):
        url = reverse('bill_split', kwargs={'table_number': '12'})

        response = self.client.patch(url, {'total_people': 2}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'No active bill split found')

    def test_person_detail(self):
        bill_split = sessions.create_session(self.table, 2)
        url = reverse('person_detail', kwargs={'session_id': bill_split.session_id, 'person_number': 2})

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['person']['person_number'], 2)
        self.assertEqual(response.data['person']['state'], Person.CREATED)
        self.assertEqual(response.data['person']['orders'], [])
        self.assertEqual(response.data['table']['number'], '12')
        self.assertEqual(response.data['bill_split']['session_id'], bill_split.session_id)

    def test_person_detail_invalid_session(self):
        url = reverse('person_detail', kwargs={'session_id': 'no-such-session', 'person_number': 1})

        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Invalid session'})

    def test_person_order_and_complete(self):
        """Test a diner orders from their QR menu and completes payment"""
        bill_split = sessions.create_session(self.table, 2)
        kwargs = {'session_id': bill_split.session_id, 'person_number': 1}

        response = self.client.post(
            reverse('person_order', kwargs=kwargs),
            {'items': [{'menu_item_id': self.salad.id, 'quantity': 1}]},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['order']['person'], response.data['person']['id'])
        self.assertEqual(response.data['person']['total_amount_p'], response.data['order']['total_p'])

        complete_url = reverse('complete_person', kwargs=kwargs)
        response = self.client.post(complete_url, {'payment_method': 'card', 'payment_id': 'pi_abc12345'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['person']['is_completed'])
        completed_at = response.data['person']['completed_at']

        response = self.client.post(complete_url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['person']['completed_at'], completed_at)

        # Completed persons can no longer order
        response = self.client.post(
            reverse('person_order', kwargs=kwargs),
            {'items': [{'menu_item_id': self.salad.id, 'quantity': 1}]},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
