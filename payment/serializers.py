from django.conf import settings
from rest_framework import serializers
from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ['id', 'order', 'provider', 'provider_ref', 'amount_p', 'currency',
                  'payment_method', 'status', 'failure_reason', 'created_at', 'confirmed_at']
        read_only_fields = fields


class SubmitPaymentSerializer(serializers.Serializer):
    """Pay for a whole order (order_id) or for selected order items (item_ids)"""
    order_id = serializers.IntegerField(required=False, help_text="Order to pay in full")
    item_ids = serializers.ListField(
        child=serializers.IntegerField(),
        required=False,
        allow_empty=True,
        help_text="Order items to pay for; may span several orders of one table",
    )
    table_number = serializers.CharField(
        max_length=20,
        required=False,
        help_text="Table the items belong to; inferred from the items when omitted",
    )
    amount_p = serializers.IntegerField(
        min_value=0,
        required=False,
        help_text="Amount the client expects to be charged, in piastres",
    )
    tip_p = serializers.IntegerField(min_value=0, required=False, default=0, help_text="Tip in piastres")
    payment_method = serializers.CharField(max_length=50, required=False, default='card')
    customer_email = serializers.EmailField(required=False, allow_blank=True, default='')
    provider = serializers.ChoiceField(choices=settings.PAYMENT_PROVIDERS, default='stripe')
    idempotency_key = serializers.CharField(max_length=100, required=False)

    def validate(self, attrs):
        if 'item_ids' not in attrs and attrs.get('order_id') is None:
            raise serializers.ValidationError("Either order_id or item_ids is required")
        return attrs
