from rest_framework import serializers
from .models import Restaurant, Table, MenuItem, Order, OrderItem


class MenuItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = MenuItem
        fields = ['id', 'name', 'description', 'category', 'price_p', 'image', 'is_available']
        extra_kwargs = {
            'price_p': {'help_text': 'Price in piastres (e.g., 68000 = EGP 680.00)'},
        }


class RestaurantSerializer(serializers.ModelSerializer):
    class Meta:
        model = Restaurant
        fields = ['id', 'name', 'address', 'phone', 'tax_rate', 'service_charge_rate']
        extra_kwargs = {
            'tax_rate': {'help_text': 'Tax rate as a fraction (e.g., 0.14 for 14%)'},
            'service_charge_rate': {'help_text': 'Service charge rate as a fraction (e.g., 0.12 for 12%)'},
        }


class TableSerializer(serializers.ModelSerializer):
    class Meta:
        model = Table
        fields = ['id', 'number', 'capacity', 'status']


class OrderItemSerializer(serializers.ModelSerializer):
    menu_item_name = serializers.CharField(source='menu_item.name', read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'menu_item', 'menu_item_name', 'quantity', 'unit_price_p',
                  'total_price_p', 'notes', 'is_paid', 'paid_at']
        extra_kwargs = {
            'total_price_p': {'help_text': 'unit_price_p x quantity'},
        }


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    table_number = serializers.CharField(source='table.number', read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'order_number', 'table_number', 'bill_split', 'person', 'customer_email',
                  'special_requests', 'subtotal_p', 'tax_p', 'service_charge_p', 'tip_p', 'total_p',
                  'status', 'payment_status', 'payment_method', 'payment_ref',
                  'created_at', 'updated_at', 'items']
        read_only_fields = fields
        extra_kwargs = {
            'total_p': {'help_text': 'subtotal + tax + service charge + tip, in piastres'},
        }


class OrderLineSerializer(serializers.Serializer):
    menu_item_id = serializers.IntegerField(help_text="ID of the menu item to order")
    quantity = serializers.IntegerField(min_value=1, help_text="Quantity (minimum 1)")
    notes = serializers.CharField(max_length=300, required=False, allow_blank=True, default='')


class CreateOrderSerializer(serializers.Serializer):
    items = OrderLineSerializer(many=True, allow_empty=False)
    tip_p = serializers.IntegerField(min_value=0, required=False, default=0, help_text="Tip in piastres")
    customer_email = serializers.EmailField(required=False, allow_blank=True, default='')
    special_requests = serializers.CharField(required=False, allow_blank=True, default='')


class CreateTableOrderSerializer(CreateOrderSerializer):
    table_number = serializers.CharField(max_length=20, help_text="Number of the table ordering")


class UnpaidItemSerializer(serializers.Serializer):
    order_item_id = serializers.IntegerField(help_text="First order item behind this row")
    menu_item_id = serializers.IntegerField()
    name = serializers.CharField()
    price_p = serializers.IntegerField(help_text="Unit price in piastres")
    quantity = serializers.IntegerField()
    total_price_p = serializers.IntegerField()
    image = serializers.CharField(allow_null=True)
    order_item_ids = serializers.ListField(
        child=serializers.IntegerField(),
        help_text="Order items aggregated into this row; submit any subset for payment",
    )


class PaidItemSerializer(serializers.Serializer):
    menu_item_id = serializers.IntegerField()
    name = serializers.CharField()
    price_p = serializers.IntegerField(help_text="Unit price in piastres")
    quantity = serializers.IntegerField()
    total_price_p = serializers.IntegerField()
    image = serializers.CharField(allow_null=True)
    paid_at = serializers.DateTimeField(allow_null=True)


class OverviewOrderSerializer(serializers.Serializer):
    id = serializers.IntegerField(source='order.id')
    order_number = serializers.CharField(source='order.order_number')
    status = serializers.CharField(source='order.status')
    payment_status = serializers.CharField(source='order.payment_status')
    created_at = serializers.DateTimeField(source='order.created_at')
    unpaid_subtotal_p = serializers.IntegerField()
    items = OrderItemSerializer(many=True)


class TableOverviewSerializer(serializers.Serializer):
    table = TableSerializer()
    orders = OverviewOrderSerializer(many=True)
    total_amount_p = serializers.IntegerField(help_text="Unpaid balance in piastres")
    is_paid = serializers.BooleanField()
