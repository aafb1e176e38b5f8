"""
Bill-split session manager.

An equal split gives every diner at a table their own QR code, sub-cart and
payment. Sessions are identified by their unique `session_id`; creating a new
split for a table retires the previous one for good.
"""
import logging
import time
import uuid

from django.conf import settings
from django.db import transaction
from django.db.models import Count, F, Prefetch
from django.utils import timezone

from orders.models import Order, OrderItem
from orders.services import place_order
from tableside.exceptions import Conflict, InvalidRequest, NotFound
from .models import BillSplit, Person
from .qr import person_url, render_qr_data_url

logger = logging.getLogger(__name__)


def generate_session_id(table):
    return f"{table.id}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def validate_total_people(total_people):
    max_people = settings.MAX_SPLIT_PEOPLE
    if total_people is None or not 1 <= total_people <= max_people:
        raise InvalidRequest(f'Invalid number of people (1-{max_people})')


def validate_available_items(table, item_ids):
    """Itemized splits pick from unpaid items of the table's live orders"""
    if not item_ids:
        raise InvalidRequest('Available items required for itemized split')
    requested = sorted(set(item_ids))
    found = (
        OrderItem.objects.filter(id__in=requested, order__table=table, is_paid=False)
        .exclude(order__payment_status=Order.PAYMENT_FAILED)
        .count()
    )
    if found != len(requested):
        raise InvalidRequest('Some items not found, already paid or do not belong to this table')
    return requested


def _new_person(bill_split, person_number):
    return Person(
        bill_split=bill_split,
        person_number=person_number,
        qr_code=render_qr_data_url(person_url(bill_split.session_id, person_number)),
    )


def _persons_with_order_counts():
    return Prefetch('persons', queryset=Person.objects.annotate(order_count=Count('orders')))


def _load_split(pk):
    return (
        BillSplit.objects.select_related('table')
        .prefetch_related(_persons_with_order_counts())
        .get(pk=pk)
    )


def get_active_split(table):
    """The table's active split with its persons, ready to serialize"""
    return (
        BillSplit.objects.filter(table=table, is_active=True)
        .select_related('table')
        .prefetch_related(_persons_with_order_counts())
        .order_by('-created_at')
        .first()
    )


def get_split(session_id):
    try:
        return (
            BillSplit.objects.select_related('table__restaurant')
            .prefetch_related(_persons_with_order_counts())
            .get(session_id=session_id)
        )
    except BillSplit.DoesNotExist:
        raise NotFound('Invalid session')


def create_session(table, total_people, split_type=BillSplit.EQUAL, available_items=None):
    """
    Start a new split for `table` with persons 1..total_people.

    An itemized split also records `available_items`, the unpaid order items
    of the table that diners can pick from. Any split that is still active
    for the table is deactivated, never deleted.
    """
    validate_total_people(total_people)
    if split_type not in (BillSplit.EQUAL, BillSplit.ITEMIZED):
        raise InvalidRequest('Invalid split type. Must be "equal" or "itemized"')
    if split_type == BillSplit.ITEMIZED:
        available_items = validate_available_items(table, available_items)
    else:
        available_items = None

    with transaction.atomic():
        retired = BillSplit.objects.filter(table=table, is_active=True).update(is_active=False)
        bill_split = BillSplit.objects.create(
            table=table,
            session_id=generate_session_id(table),
            total_people=total_people,
            split_type=split_type,
            available_items=available_items,
        )
        Person.objects.bulk_create([
            _new_person(bill_split, number) for number in range(1, total_people + 1)
        ])

    logger.info(
        f"Table {table.number}: created {split_type} split {bill_split.session_id} "
        f"for {total_people} people, retired {retired}"
    )
    return _load_split(bill_split.pk)


def resize_session(session_id, total_people):
    """
    Change the head count of an active split.

    Growing adds the missing person numbers. Shrinking removes persons above
    the new count only if they never ordered or paid; those who did are kept
    and reported back. total_people is the target count either way.

    Returns:
        Tuple of (bill split, blocked person numbers)
    """
    validate_total_people(total_people)

    with transaction.atomic():
        try:
            bill_split = BillSplit.objects.select_for_update().get(session_id=session_id, is_active=True)
        except BillSplit.DoesNotExist:
            raise NotFound('No active bill split found')

        persons = list(bill_split.persons.annotate(order_count=Count('orders')))
        existing = {person.person_number for person in persons}
        Person.objects.bulk_create([
            _new_person(bill_split, number)
            for number in range(1, total_people + 1)
            if number not in existing
        ])

        removable, blocked = [], []
        for person in persons:
            if person.person_number <= total_people:
                continue
            if person.is_removable():
                removable.append(person.id)
            else:
                blocked.append(person.person_number)
        if removable:
            Person.objects.filter(id__in=removable).delete()

        bill_split.total_people = total_people
        bill_split.save(update_fields=['total_people', 'updated_at'])

    if blocked:
        logger.warning(f"Split {session_id}: resized to {total_people} but persons {blocked} already ordered and were kept")
    else:
        logger.info(f"Split {session_id}: resized to {total_people} people")
    return _load_split(bill_split.pk), blocked


def get_person(session_id, person_number):
    bill_split = get_split(session_id)
    try:
        person = bill_split.persons.get(person_number=person_number)
    except Person.DoesNotExist:
        raise NotFound('Person not found')
    return bill_split, person


def get_person_context(session_id, person_number):
    """
    Everything a diner's page needs: the split, the table and restaurant,
    and the person with their orders and items.
    """
    bill_split = get_split(session_id)
    orders = Order.objects.prefetch_related(
        Prefetch('items', queryset=OrderItem.objects.select_related('menu_item'))
    ).select_related('table')
    person = (
        bill_split.persons.prefetch_related(Prefetch('orders', queryset=orders))
        .filter(person_number=person_number)
        .first()
    )
    if person is None:
        raise NotFound('Person not found')
    return {
        'bill_split': bill_split,
        'person': person,
        'table': bill_split.table,
        'restaurant': bill_split.table.restaurant,
    }


def place_person_order(session_id, person_number, items, tip_p=0, customer_email='', special_requests=''):
    """
    Order from a person's own QR menu; the order total is added to the
    person's running amount.
    """
    bill_split, person = get_person(session_id, person_number)
    if not bill_split.is_active:
        raise Conflict('Bill split session is no longer active')
    if person.is_completed:
        raise Conflict('Person has already completed payment')

    with transaction.atomic():
        order = place_order(
            bill_split.table,
            items,
            tip_p=tip_p,
            customer_email=customer_email,
            special_requests=special_requests,
            bill_split=bill_split,
            person=person,
        )
        Person.objects.filter(pk=person.pk).update(total_amount_p=F('total_amount_p') + order.total_p)
        person.refresh_from_db(fields=['total_amount_p'])

    return order, person


def complete_person(session_id, person_number, payment_method='', payment_ref=''):
    """
    Close out one diner of a split by confirming all of their orders.

    Item paid flags, the table status and the other persons are left alone.
    Completing an already completed person changes nothing.
    """
    bill_split, person = get_person(session_id, person_number)
    if person.is_completed:
        logger.info(f"Split {session_id}: person {person_number} already completed")
        return person

    now = timezone.now()
    with transaction.atomic():
        person = Person.objects.select_for_update().get(pk=person.pk)
        if person.is_completed:
            return person

        person.is_completed = True
        person.completed_at = now
        person.save(update_fields=['is_completed', 'completed_at'])

        confirmed = Order.objects.filter(person=person, bill_split=bill_split).update(
            payment_method=payment_method,
            payment_ref=payment_ref,
            payment_status=Order.PAYMENT_COMPLETED,
            status=Order.CONFIRMED,
            updated_at=now,
        )

    logger.info(f"Split {session_id}: person {person_number} completed, {confirmed} orders confirmed")
    return person
