from rest_framework import serializers
from orders.serializers import OrderSerializer, TableSerializer, RestaurantSerializer
from .models import BillSplit, Person


class PersonSerializer(serializers.ModelSerializer):
    state = serializers.CharField(read_only=True)

    class Meta:
        model = Person
        fields = ['id', 'person_number', 'name', 'qr_code', 'total_amount_p',
                  'is_completed', 'completed_at', 'state']
        read_only_fields = fields
        extra_kwargs = {
            'qr_code': {'help_text': 'PNG data URL encoding /person/{session_id}/{person_number}'},
            'total_amount_p': {'help_text': 'Sum of this person\'s order totals in piastres'},
        }


class PersonDetailSerializer(PersonSerializer):
    orders = OrderSerializer(many=True, read_only=True)

    class Meta(PersonSerializer.Meta):
        fields = PersonSerializer.Meta.fields + ['orders']
        read_only_fields = fields


class BillSplitSerializer(serializers.ModelSerializer):
    persons = PersonSerializer(many=True, read_only=True)
    table_number = serializers.CharField(source='table.number', read_only=True)

    class Meta:
        model = BillSplit
        fields = ['id', 'session_id', 'table_number', 'total_people', 'split_type',
                  'available_items', 'is_active', 'created_at', 'persons']
        read_only_fields = fields


class CreateBillSplitSerializer(serializers.Serializer):
    total_people = serializers.IntegerField(min_value=1, help_text="Number of people sharing the bill")
    split_type = serializers.ChoiceField(
        choices=BillSplit.SPLIT_TYPE_CHOICES,
        default=BillSplit.EQUAL,
        help_text="equal: one QR menu per person; itemized: pay for selected items",
    )
    available_items = serializers.ListField(
        child=serializers.IntegerField(),
        required=False,
        help_text="Unpaid order item ids diners pick from (itemized splits only)",
    )


class ResizeBillSplitSerializer(serializers.Serializer):
    total_people = serializers.IntegerField(min_value=1, help_text="New number of people")


class CompletePersonSerializer(serializers.Serializer):
    payment_method = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    payment_id = serializers.CharField(
        max_length=100,
        required=False,
        allow_blank=True,
        default='',
        help_text="Provider reference of the payment",
    )


class PersonContextSerializer(serializers.Serializer):
    bill_split = BillSplitSerializer()
    person = PersonDetailSerializer()
    table = TableSerializer()
    restaurant = RestaurantSerializer()
