from django.contrib import admin
from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'table', 'order', 'provider', 'provider_ref', 'amount_p', 'status', 'created_at']
    list_filter = ['status', 'provider', 'created_at']
    search_fields = ['provider_ref', 'table__number', 'order__order_number']
    readonly_fields = ['created_at', 'confirmed_at']
