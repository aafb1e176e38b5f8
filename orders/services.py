import logging
import time
import uuid
from decimal import Decimal

from django.db import transaction

from tableside.exceptions import InvalidRequest, NotFound
from .models import MenuItem, Order, OrderItem, Table

logger = logging.getLogger(__name__)


def get_table(table_number):
    """Look up a table by its number"""
    table = (
        Table.objects.select_related('restaurant')
        .filter(number=str(table_number))
        .order_by('id')
        .first()
    )
    if table is None:
        raise NotFound('Table not found')
    return table


def generate_order_number():
    return f"ORD-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9].upper()}"


def calculate_charges(restaurant, subtotal_p, tip_p=0):
    """
    Price a subtotal with the restaurant's current rates.

    Args:
        restaurant: Restaurant whose tax and service charge rates apply
        subtotal_p: Sum of line totals in minor units
        tip_p: Tip in minor units, added as-is

    Returns:
        Dict with subtotal_p, tax_p, service_charge_p, tip_p and total_p
    """
    tax_p = int(Decimal(subtotal_p) * restaurant.tax_rate)
    service_charge_p = int(Decimal(subtotal_p) * restaurant.service_charge_rate)
    return {
        'subtotal_p': subtotal_p,
        'tax_p': tax_p,
        'service_charge_p': service_charge_p,
        'tip_p': tip_p,
        'total_p': subtotal_p + tax_p + service_charge_p + tip_p,
    }


def place_order(table, items, tip_p=0, customer_email='', special_requests='',
                bill_split=None, person=None):
    """
    Create an order for a table and mark the table occupied.

    `items` is a list of dicts with menu_item_id, quantity and optional notes.
    Prices are taken from the catalog, never from the caller.
    """
    if not items:
        raise InvalidRequest('Order must contain at least one item')

    menu_ids = {item['menu_item_id'] for item in items}
    menu_items = MenuItem.objects.in_bulk(menu_ids)
    for menu_id in menu_ids:
        menu_item = menu_items.get(menu_id)
        if menu_item is None or not menu_item.is_available:
            raise InvalidRequest(f'Menu item {menu_id} is not available')

    restaurant = table.restaurant
    subtotal_p = sum(menu_items[item['menu_item_id']].price_p * item['quantity'] for item in items)
    charges = calculate_charges(restaurant, subtotal_p, tip_p)

    with transaction.atomic():
        order = Order.objects.create(
            order_number=generate_order_number(),
            table=table,
            restaurant=restaurant,
            bill_split=bill_split,
            person=person,
            customer_email=customer_email,
            special_requests=special_requests,
            **charges,
        )
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                menu_item=menu_items[item['menu_item_id']],
                quantity=item['quantity'],
                unit_price_p=menu_items[item['menu_item_id']].price_p,
                total_price_p=menu_items[item['menu_item_id']].price_p * item['quantity'],
                notes=item.get('notes', ''),
            )
            for item in items
        ])
        Table.objects.filter(pk=table.pk).update(status=Table.OCCUPIED)
        table.status = Table.OCCUPIED

    logger.info(f"Order {order.order_number} placed at table {table.number} for {order.total_p}")
    return order