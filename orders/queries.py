"""
Read-side queries shared by the settlement engine and the operator views.

Both the unpaid and the paid item views are scoped to the same
"current session" order set, so that for any table the two always add up
to the full value of the session's order items.
"""
from .models import Order, OrderItem


def current_session_order_ids(table):
    """
    Ids of the orders at `table` that are still being settled.

    An order belongs to the current session when its payment has not failed
    and at least one of its items is unpaid.
    """
    return list(
        Order.objects.filter(table=table, items__is_paid=False)
        .exclude(payment_status=Order.PAYMENT_FAILED)
        .values_list('id', flat=True)
        .distinct()
    )


def session_items(table, order_ids=None):
    if order_ids is None:
        order_ids = current_session_order_ids(table)
    return OrderItem.objects.filter(order_id__in=order_ids).select_related('menu_item')


def unpaid_item_count(table):
    return OrderItem.objects.filter(
        order__table=table,
        is_paid=False,
    ).exclude(order__payment_status=Order.PAYMENT_FAILED).count()


def aggregate_by_menu_item(items, with_ids=False, with_paid_at=False):
    """
    Collapse order items into one row per menu item.

    Quantities and line totals are summed, the unit price is kept for
    display. Rows keep the order in which their menu item first appears.
    """
    rows = {}
    for item in items:
        row = rows.get(item.menu_item_id)
        if row is None:
            row = {
                'menu_item_id': item.menu_item_id,
                'name': item.menu_item.name,
                'price_p': item.unit_price_p,
                'quantity': 0,
                'total_price_p': 0,
                'image': item.menu_item.image or None,
            }
            if with_ids:
                row['order_item_id'] = item.id
                row['order_item_ids'] = []
            if with_paid_at:
                row['paid_at'] = item.paid_at
            rows[item.menu_item_id] = row
        row['quantity'] += item.quantity
        row['total_price_p'] += item.total_price_p
        if with_ids:
            row['order_item_ids'].append(item.id)
    return list(rows.values())


def tables_overview(tables):
    """Per-table unpaid orders and balances for the operator console"""
    overview = []
    for table in tables:
        orders = []
        total_p = 0
        unpaid = (
            OrderItem.objects.filter(order__table=table, is_paid=False)
            .exclude(order__payment_status=Order.PAYMENT_FAILED)
            .select_related('menu_item', 'order')
            .order_by('-order__created_at', 'id')
        )
        by_order = {}
        for item in unpaid:
            by_order.setdefault(item.order, []).append(item)
        for order, items in by_order.items():
            unpaid_subtotal_p = sum(item.total_price_p for item in items)
            total_p += unpaid_subtotal_p
            orders.append({
                'order': order,
                'items': items,
                'unpaid_subtotal_p': unpaid_subtotal_p,
            })
        overview.append({
            'table': table,
            'orders': orders,
            'total_amount_p': total_p,
            'is_paid': not orders,
        })
    return overview
