"""
Settlement engine: what a table owes, what has been paid, and when the
table is clear.

Paid state lives on OrderItem. Every write path marks items paid and then
re-derives the table status inside one transaction while holding a row lock
on the table, so two concurrent payments on the same table cannot both
observe "nothing left to pay" from a stale read.
"""
import logging

from django.db import transaction
from django.utils import timezone

from tableside.exceptions import Conflict, InvalidRequest, NotFound
from .models import Order, OrderItem, Table
from .queries import (
    aggregate_by_menu_item,
    current_session_order_ids,
    session_items,
    unpaid_item_count,
)
from .services import calculate_charges, generate_order_number

logger = logging.getLogger(__name__)


def _lock_table(table_id):
    return Table.objects.select_for_update().get(pk=table_id)


def get_unpaid_items(table):
    """
    Unpaid items of the table's current session, one row per menu item.

    Each row carries the ids of the underlying order items so the caller can
    pay for any subset of them.
    """
    order_ids = current_session_order_ids(table)
    items = session_items(table, order_ids).filter(is_paid=False).order_by('id')
    return aggregate_by_menu_item(items, with_ids=True)


def get_paid_items(table):
    """
    Paid items of the table's current session, most recently paid first.

    Returns:
        Tuple of (rows, subtotal_p)
    """
    order_ids = current_session_order_ids(table)
    items = session_items(table, order_ids).filter(is_paid=True).order_by('-paid_at', 'id')
    rows = aggregate_by_menu_item(items, with_paid_at=True)
    return rows, sum(row['total_price_p'] for row in rows)


def resolve_payable_items(table, item_ids):
    """
    Validate a partial payment request before any money moves.

    Every id must be an item of a non-failed order at this table. Items that
    are already paid are dropped; if nothing is left the request conflicts.
    """
    if not item_ids:
        raise InvalidRequest('No items selected for payment')

    requested = set(item_ids)
    items = list(
        OrderItem.objects.filter(id__in=requested, order__table=table)
        .exclude(order__payment_status=Order.PAYMENT_FAILED)
    )
    if len(items) != len(requested):
        raise InvalidRequest('Some items not found or do not belong to this table')

    unpaid = [item for item in items if not item.is_paid]
    if not unpaid:
        raise Conflict('Selected items are already paid')
    return unpaid


def table_for_items(item_ids):
    """The one table a set of order items belongs to"""
    if not item_ids:
        raise InvalidRequest('No items selected for payment')
    table_ids = set(
        OrderItem.objects.filter(id__in=set(item_ids)).values_list('order__table_id', flat=True)
    )
    if not table_ids:
        raise InvalidRequest('Some items not found or do not belong to this table')
    if len(table_ids) > 1:
        raise InvalidRequest('Items must all belong to the same table')
    return Table.objects.select_related('restaurant').get(pk=table_ids.pop())


def quote_items(table, item_ids, tip_p=0):
    """Charges a partial payment for `item_ids` would be recorded with"""
    items = resolve_payable_items(table, item_ids)
    subtotal_p = sum(item.total_price_p for item in items)
    return calculate_charges(table.restaurant, subtotal_p, tip_p)


def get_payable_order(order_id):
    try:
        order = Order.objects.select_related('table').get(pk=order_id)
    except Order.DoesNotExist:
        raise NotFound('Order not found')
    if order.payment_status == Order.PAYMENT_COMPLETED:
        raise Conflict('Order is already paid')
    return order


def rederive_table_status(table, now=None):
    """
    Flip the table to AVAILABLE once nothing is left to pay.

    Must run inside the transaction that marked items paid, with the table
    row locked. Returns True when the table was cleared.
    """
    remaining = unpaid_item_count(table)
    if remaining:
        logger.info(f"Table {table.number}: {remaining} unpaid items remain")
        return False

    now = now or timezone.now()
    completed = Order.objects.filter(table=table).exclude(
        payment_status=Order.PAYMENT_COMPLETED,
    ).update(
        payment_status=Order.PAYMENT_COMPLETED,
        status=Order.CONFIRMED,
        updated_at=now,
    )
    Table.objects.filter(pk=table.pk).update(status=Table.AVAILABLE, updated_at=now)
    table.status = Table.AVAILABLE
    logger.info(f"Table {table.number} fully paid, {completed} orders completed, table available")
    return True


def settle_order(order_id, payment_method='', payment_ref=''):
    """
    Full-order payment: confirm the order and mark all of its items paid.
    """
    now = timezone.now()
    with transaction.atomic():
        order = get_payable_order(order_id)
        table = _lock_table(order.table_id)
        order = Order.objects.select_for_update().get(pk=order_id)
        if order.payment_status == Order.PAYMENT_COMPLETED:
            raise Conflict('Order is already paid')

        marked = order.items.filter(is_paid=False).update(is_paid=True, paid_at=now)
        order.payment_status = Order.PAYMENT_COMPLETED
        order.status = Order.CONFIRMED
        order.payment_method = payment_method
        order.payment_ref = payment_ref
        order.save(update_fields=['payment_status', 'status', 'payment_method', 'payment_ref', 'updated_at'])

        rederive_table_status(table, now)

    logger.info(f"Order {order.order_number} paid in full, {marked} items marked paid")
    return order


def settle_items(table, item_ids, tip_p=0, payment_method='', payment_ref='', customer_email='',
                 expected_subtotal_p=None):
    """
    Partial payment: mark exactly the given items paid.

    The payment is recorded as a new confirmed order priced from the settled
    items with the restaurant's current rates plus the tip. The items stay
    owned by their original orders.

    With `expected_subtotal_p` (the quoted subtotal the customer was charged
    for), items paid by someone else since the quote raise Conflict instead
    of settling a smaller set.

    Returns:
        Tuple of (receipt order, settled items)
    """
    if not item_ids:
        raise InvalidRequest('No items selected for payment')

    now = timezone.now()
    with transaction.atomic():
        table = _lock_table(table.pk)
        items = list(
            OrderItem.objects
            .filter(id__in=set(item_ids), order__table=table, is_paid=False)
            .exclude(order__payment_status=Order.PAYMENT_FAILED)
            .order_by('id')
        )
        if not items:
            logger.warning(f"Table {table.number}: partial payment for already paid items {sorted(set(item_ids))}")
            raise Conflict('Selected items are already paid')

        subtotal_p = sum(item.total_price_p for item in items)
        if expected_subtotal_p is not None and subtotal_p != expected_subtotal_p:
            logger.warning(
                f"Table {table.number}: items changed while paying, quoted {expected_subtotal_p} now {subtotal_p}"
            )
            raise Conflict('Selected items changed while paying')

        OrderItem.objects.filter(id__in=[item.id for item in items]).update(is_paid=True, paid_at=now)
        for item in items:
            item.is_paid = True
            item.paid_at = now

        charges = calculate_charges(table.restaurant, subtotal_p, tip_p)
        receipt = Order.objects.create(
            order_number=generate_order_number(),
            table=table,
            restaurant=table.restaurant,
            customer_email=customer_email,
            status=Order.CONFIRMED,
            payment_status=Order.PAYMENT_COMPLETED,
            payment_method=payment_method,
            payment_ref=payment_ref,
            **charges,
        )

        rederive_table_status(table, now)

    logger.info(f"Table {table.number}: {len(items)} items paid under {receipt.order_number} for {receipt.total_p}")
    return receipt, items


def clear_table(table):
    """
    Hard-delete every order and order item of the table and free it.

    Returns:
        Tuple of (deleted items, deleted orders)
    """
    with transaction.atomic():
        table = _lock_table(table.pk)
        items = OrderItem.objects.filter(order__table=table)
        deleted_items = items.count()
        items.delete()
        orders = Order.objects.filter(table=table)
        deleted_orders = orders.count()
        orders.delete()
        table.status = Table.AVAILABLE
        table.save(update_fields=['status', 'updated_at'])

    logger.info(f"Cleared table {table.number}: {deleted_items} items, {deleted_orders} orders deleted")
    return deleted_items, deleted_orders


def reset_table(table):
    """
    Undo settlement for the table without losing order history.

    Returns the number of items reset to unpaid.
    """
    now = timezone.now()
    with transaction.atomic():
        table = _lock_table(table.pk)
        count = OrderItem.objects.filter(order__table=table).update(is_paid=False, paid_at=None)
        Order.objects.filter(table=table).update(
            payment_status=Order.PAYMENT_PENDING,
            status=Order.PENDING,
            updated_at=now,
        )
        table.status = Table.OCCUPIED
        table.save(update_fields=['status', 'updated_at'])

    logger.info(f"Reset table {table.number}: {count} items marked unpaid")
    return count
