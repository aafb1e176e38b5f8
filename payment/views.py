import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.views import APIView
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from orders.services import get_table
from orders import settlement
from tableside.exceptions import Conflict, InvalidRequest, PaymentDeclined, UpstreamFailure
from .models import Payment
from .serializers import PaymentSerializer, SubmitPaymentSerializer
from .gateway import MockPaymentGateway, PaymentGatewayError

logger = logging.getLogger(__name__)


class SubmitPaymentView(APIView):
    """Charge the customer, then settle the paid order or items"""

    @extend_schema(
        summary="Submit payment",
        description=(
            "With item_ids, pay for exactly those order items (partial payment, recorded as a new "
            "receipt order). Otherwise pay order_id in full. Nothing is marked paid unless the "
            "provider charge succeeds. A charge whose items were paid by someone else meanwhile is "
            "refunded and answered with 409. Retries with the same idempotency_key replay the first "
            "response, or get 409 while the first request is still running."
        ),
        request=SubmitPaymentSerializer,
        responses={
            200: OpenApiTypes.OBJECT,
            400: OpenApiTypes.OBJECT,
            402: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
            502: OpenApiTypes.OBJECT
        },
        examples=[
            OpenApiExample(
                'Partial Payment Request',
                summary='Pay for two order items',
                value={'item_ids': [31, 32], 'tip_p': 1000, 'payment_method': 'card', 'provider': 'stripe'}
            ),
            OpenApiExample(
                'Payment Success',
                summary='Successful payment',
                value={
                    'success': True,
                    'order_id': 42,
                    'order_number': 'ORD-1718000000000-3F2A9C1B0',
                    'amount_p': 12600,
                    'provider': {'name': 'stripe', 'reference': 'pi_3f2a9c1b', 'status': 'succeeded'},
                    'payment': {'id': 7, 'order': 42, 'provider_ref': 'pi_3f2a9c1b', 'amount_p': 12600, 'status': 'succeeded'}
                }
            ),
            OpenApiExample(
                'Payment Failure',
                summary='Declined payment',
                value={'error': 'Payment failed', 'reason': 'Insufficient funds'}
            )
        ]
    )
    def post(self, request):
        serializer = SubmitPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        gateway = MockPaymentGateway(provider=data['provider'])
        idempotency_key = data.get('idempotency_key')
        if idempotency_key and not gateway.reserve_key(idempotency_key):
            stored = gateway.get_stored_result(idempotency_key)
            if stored is None:
                logger.warning(f"Payment for key {idempotency_key} is still in progress")
                raise Conflict('A payment with this idempotency key is already in progress')
            logger.info(f"Replaying stored payment result for key {idempotency_key}")
            return Response(stored)

        try:
            payload = self._pay(gateway, data)
        except Exception:
            # A failed attempt does not hold the key
            if idempotency_key:
                gateway.clear_stored_result(idempotency_key)
            raise

        if idempotency_key:
            gateway.store_result(idempotency_key, payload)
        return Response(payload)

    def _pay(self, gateway, data):
        partial = 'item_ids' in data

        # Validate everything before money moves
        if partial:
            if data.get('table_number'):
                table = get_table(data['table_number'])
            else:
                table = settlement.table_for_items(data['item_ids'])
            quote = settlement.quote_items(table, data['item_ids'], data['tip_p'])
            expected_p = quote['total_p']
            order = None
        else:
            order = settlement.get_payable_order(data['order_id'])
            table = order.table
            expected_p = order.total_p

        amount_p = data.get('amount_p', expected_p)
        if amount_p != expected_p:
            raise InvalidRequest(f'Amount {amount_p} does not match the amount due {expected_p}')

        try:
            result = gateway.charge(amount_p, currency=settings.PAYMENT_CURRENCY)
        except PaymentGatewayError as exc:
            logger.error(f"Payment provider {data['provider']} failed for table {table.number}: {exc}")
            raise UpstreamFailure()

        record = {
            'table': table,
            'provider': data['provider'],
            'provider_ref': result['reference'],
            'amount_p': amount_p,
            'currency': result['currency'],
            'payment_method': data['payment_method'],
            'customer_email': data['customer_email'],
            'idempotency_key': data.get('idempotency_key', ''),
        }

        if result['status'] != Payment.SUCCEEDED:
            Payment.objects.create(
                order=order,
                status=Payment.FAILED,
                failure_reason=result.get('reason', 'Payment failed'),
                **record,
            )
            logger.warning(f"Payment {result['reference']} declined for table {table.number}: {result.get('reason')}")
            raise PaymentDeclined(result.get('reason', 'Payment failed'))

        try:
            with transaction.atomic():
                if partial:
                    receipt, items = settlement.settle_items(
                        table,
                        data['item_ids'],
                        tip_p=data['tip_p'],
                        payment_method=data['payment_method'],
                        payment_ref=result['reference'],
                        customer_email=data['customer_email'],
                        expected_subtotal_p=quote['subtotal_p'],
                    )
                else:
                    receipt = settlement.settle_order(
                        order.id,
                        payment_method=data['payment_method'],
                        payment_ref=result['reference'],
                    )
                    items = list(receipt.items.all())

                payment = Payment.objects.create(
                    order=receipt,
                    status=Payment.SUCCEEDED,
                    confirmed_at=timezone.now(),
                    **record,
                )
                payment.settled_items.set(items)
        except Conflict as exc:
            # Charged, but another payment settled the items first
            gateway.refund(result['reference'], amount_p)
            Payment.objects.create(
                order=order,
                status=Payment.REFUNDED,
                failure_reason=str(exc.detail),
                **record,
            )
            logger.error(f"Payment {result['reference']} refunded for table {table.number}: {exc.detail}")
            raise

        return {
            'success': True,
            'order_id': receipt.id,
            'order_number': receipt.order_number,
            'amount_p': amount_p,
            'provider': {
                'name': data['provider'],
                'reference': result['reference'],
                'status': result['status'],
            },
            'payment': PaymentSerializer(payment).data,
        }
