from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from orders.serializers import CreateOrderSerializer, OrderSerializer
from orders.services import get_table
from tableside.exceptions import NotFound
from .serializers import (
    BillSplitSerializer, CreateBillSplitSerializer, ResizeBillSplitSerializer,
    CompletePersonSerializer, PersonSerializer, PersonContextSerializer,
)
from . import sessions

PERSON_PARAMETERS = [
    OpenApiParameter(
        name='session_id',
        type=OpenApiTypes.STR,
        location=OpenApiParameter.PATH,
        description='Bill split session ID'
    ),
    OpenApiParameter(
        name='person_number',
        type=OpenApiTypes.INT,
        location=OpenApiParameter.PATH,
        description='Person number within the split'
    ),
]


class BillSplitView(APIView):
    """Equal / itemized split session of a table"""

    @extend_schema(
        summary="Get the active bill split",
        responses={200: BillSplitSerializer}
    )
    def get(self, request, table_number):
        table = get_table(table_number)
        bill_split = sessions.get_active_split(table)
        return Response({
            'bill_split': BillSplitSerializer(bill_split).data if bill_split else None
        })

    @extend_schema(
        summary="Create a bill split",
        description="Start a new split for the table, retiring any active one. Each person gets a QR code.",
        request=CreateBillSplitSerializer,
        responses={201: BillSplitSerializer},
        examples=[
            OpenApiExample(
                'Split Example',
                summary='Split table 12 four ways',
                value={'total_people': 4, 'split_type': 'equal'}
            ),
            OpenApiExample(
                'Itemized Split Example',
                summary='Split table 12 by items',
                value={'total_people': 2, 'split_type': 'itemized', 'available_items': [31, 32, 33]}
            )
        ]
    )
    def post(self, request, table_number):
        serializer = CreateBillSplitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        table = get_table(table_number)
        bill_split = sessions.create_session(
            table,
            serializer.validated_data['total_people'],
            serializer.validated_data['split_type'],
            serializer.validated_data.get('available_items'),
        )
        return Response({'bill_split': BillSplitSerializer(bill_split).data}, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Resize the active bill split",
        description=(
            "Add persons or remove persons who have not ordered yet. Persons who ordered "
            "or paid are kept and listed in blocked_person_numbers."
        ),
        request=ResizeBillSplitSerializer,
        responses={200: BillSplitSerializer}
    )
    def patch(self, request, table_number):
        serializer = ResizeBillSplitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        table = get_table(table_number)
        active = sessions.get_active_split(table)
        if active is None:
            raise NotFound('No active bill split found')

        bill_split, blocked = sessions.resize_session(active.session_id, serializer.validated_data['total_people'])
        return Response({
            'bill_split': BillSplitSerializer(bill_split).data,
            'blocked_person_numbers': blocked,
        })


class PersonDetailView(APIView):
    @extend_schema(
        summary="Get a person's page data",
        parameters=PERSON_PARAMETERS,
        responses={200: PersonContextSerializer}
    )
    def get(self, request, session_id, person_number):
        context = sessions.get_person_context(session_id, person_number)
        return Response(PersonContextSerializer(context).data)


class PersonOrderView(APIView):
    @extend_schema(
        summary="Place a person's order",
        description="Order from a person's own QR menu within an active split",
        parameters=PERSON_PARAMETERS,
        request=CreateOrderSerializer,
        responses={201: OrderSerializer}
    )
    def post(self, request, session_id, person_number):
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order, person = sessions.place_person_order(
            session_id,
            person_number,
            data['items'],
            tip_p=data['tip_p'],
            customer_email=data['customer_email'],
            special_requests=data['special_requests'],
        )
        return Response({
            'order': OrderSerializer(order).data,
            'person': PersonSerializer(person).data,
        }, status=status.HTTP_201_CREATED)


class CompletePersonView(APIView):
    @extend_schema(
        summary="Complete a person's payment",
        description="Confirm all of the person's orders and lock their menu. Idempotent.",
        parameters=PERSON_PARAMETERS,
        request=CompletePersonSerializer,
        responses={200: PersonSerializer}
    )
    def post(self, request, session_id, person_number):
        serializer = CompletePersonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        person = sessions.complete_person(
            session_id,
            person_number,
            payment_method=serializer.validated_data['payment_method'],
            payment_ref=serializer.validated_data['payment_id'],
        )
        return Response({'person': PersonSerializer(person).data})
