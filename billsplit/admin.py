from django.contrib import admin
from .models import BillSplit, Person


class PersonInline(admin.TabularInline):
    model = Person
    extra = 0
    exclude = ['qr_code']
    readonly_fields = ['total_amount_p', 'completed_at']


@admin.register(BillSplit)
class BillSplitAdmin(admin.ModelAdmin):
    list_display = ['session_id', 'table', 'total_people', 'split_type', 'is_active', 'created_at']
    list_filter = ['is_active', 'split_type']
    search_fields = ['session_id', 'table__number']
    readonly_fields = ['created_at']
    inlines = [PersonInline]
