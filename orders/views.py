from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from django.shortcuts import get_object_or_404
from django.utils.decorators import method_decorator
from django.views.decorators.cache import never_cache
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from tableside.permissions import IsOperator
from .models import Restaurant, Table, MenuItem, Order
from .queries import tables_overview
from .serializers import (
    MenuItemSerializer, RestaurantSerializer, TableSerializer, OrderSerializer,
    CreateTableOrderSerializer, UnpaidItemSerializer, PaidItemSerializer,
    TableOverviewSerializer,
)
from .services import get_table, place_order
from . import settlement

TABLE_NUMBER_PARAMETER = OpenApiParameter(
    name='table_number',
    type=OpenApiTypes.STR,
    location=OpenApiParameter.PATH,
    description='Table number'
)


class MenuView(APIView):
    @extend_schema(
        summary="List the menu",
        description="Available menu items ordered by category",
        responses={200: MenuItemSerializer(many=True)}
    )
    def get(self, request):
        items = MenuItem.objects.filter(restaurant=Restaurant.get_default(), is_available=True)
        return Response(MenuItemSerializer(items, many=True).data)


class TableDetailView(APIView):
    @extend_schema(
        summary="Get table details",
        description="Table status and the restaurant's tax and service charge rates",
        parameters=[TABLE_NUMBER_PARAMETER],
        responses={200: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT}
    )
    def get(self, request, table_number):
        table = get_table(table_number)
        return Response({
            'table': TableSerializer(table).data,
            'restaurant': RestaurantSerializer(table.restaurant).data,
        })


@method_decorator(never_cache, name='dispatch')
class UnpaidItemsView(APIView):
    @extend_schema(
        summary="List unpaid items",
        description="Unpaid items of the table's current session, aggregated by menu item. Never cached.",
        parameters=[TABLE_NUMBER_PARAMETER],
        responses={200: UnpaidItemSerializer(many=True), 404: OpenApiTypes.OBJECT}
    )
    def get(self, request, table_number):
        table = get_table(table_number)
        items = settlement.get_unpaid_items(table)
        return Response({
            'items': UnpaidItemSerializer(items, many=True).data,
            'table_number': table.number,
        })


@method_decorator(never_cache, name='dispatch')
class PaidItemsView(APIView):
    @extend_schema(
        summary="List paid items",
        description="Paid items of the table's current session, most recently paid first",
        parameters=[TABLE_NUMBER_PARAMETER],
        responses={200: PaidItemSerializer(many=True), 404: OpenApiTypes.OBJECT}
    )
    def get(self, request, table_number):
        table = get_table(table_number)
        items, subtotal_p = settlement.get_paid_items(table)
        return Response({
            'items': PaidItemSerializer(items, many=True).data,
            'table_number': table.number,
            'subtotal_p': subtotal_p,
        })


class CreateOrderView(APIView):
    @extend_schema(
        summary="Place an order",
        description="Place an order against a table. The table becomes occupied.",
        request=CreateTableOrderSerializer,
        responses={201: OrderSerializer},
        examples=[
            OpenApiExample(
                'Create Order Example',
                summary='Two soups for table 12',
                value={'table_number': '12', 'items': [{'menu_item_id': 1, 'quantity': 2}]}
            )
        ]
    )
    def post(self, request):
        serializer = CreateTableOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        table = get_table(data['table_number'])
        order = place_order(
            table,
            data['items'],
            tip_p=data['tip_p'],
            customer_email=data['customer_email'],
            special_requests=data['special_requests'],
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    @extend_schema(
        summary="Get order details",
        description="Order with its items, used for receipts",
        parameters=[
            OpenApiParameter(
                name='order_id',
                type=OpenApiTypes.INT,
                location=OpenApiParameter.PATH,
                description='Order ID'
            )
        ],
        responses={200: OrderSerializer}
    )
    def get(self, request, order_id):
        order = get_object_or_404(Order.objects.select_related('table'), id=order_id)
        return Response(OrderSerializer(order).data)


class ClearTableView(APIView):
    permission_classes = [IsOperator]

    @extend_schema(
        summary="Clear a table",
        description="Delete every order and order item of the table and mark it available. Operator only.",
        request=None,
        parameters=[TABLE_NUMBER_PARAMETER],
        responses={200: OpenApiTypes.OBJECT}
    )
    def post(self, request, table_number):
        table = get_table(table_number)
        deleted_items, deleted_orders = settlement.clear_table(table)
        return Response({
            'success': True,
            'message': f'Cleared table {table.number}',
            'deleted_items': deleted_items,
            'deleted_orders': deleted_orders,
        })


class ResetTableView(APIView):
    permission_classes = [IsOperator]

    @extend_schema(
        summary="Reset a table",
        description="Mark every item of the table unpaid again and the table occupied. Operator only.",
        request=None,
        parameters=[TABLE_NUMBER_PARAMETER],
        responses={200: OpenApiTypes.OBJECT}
    )
    def post(self, request, table_number):
        table = get_table(table_number)
        count = settlement.reset_table(table)
        return Response({
            'success': True,
            'message': f'Reset {count} items for table {table.number}',
            'count': count,
        })


class TablesWithOrdersView(APIView):
    permission_classes = [IsOperator]

    @extend_schema(
        summary="Tables with open orders",
        description="Every table with its unpaid orders and outstanding balance. Operator only.",
        responses={200: TableOverviewSerializer(many=True)}
    )
    def get(self, request):
        tables = Table.objects.select_related('restaurant').order_by('number')
        return Response(TableOverviewSerializer(tables_overview(tables), many=True).data)
