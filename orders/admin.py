from django.contrib import admin
from .models import Restaurant, Table, MenuItem, Order, OrderItem


@admin.register(Restaurant)
class RestaurantAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'tax_rate', 'service_charge_rate']


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ['id', 'number', 'capacity', 'status', 'updated_at']
    list_filter = ['status']
    search_fields = ['number']


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'category', 'price_p', 'is_available']
    search_fields = ['name']
    list_filter = ['category', 'is_available']


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['paid_at']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'table', 'total_p', 'status', 'payment_status', 'created_at']
    list_filter = ['status', 'payment_status', 'created_at']
    search_fields = ['order_number', 'table__number']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [OrderItemInline]
