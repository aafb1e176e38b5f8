from django.urls import path
from . import views

urlpatterns = [
    path('menu', views.MenuView.as_view(), name='menu'),
    path('orders', views.CreateOrderView.as_view(), name='create_order'),
    path('orders/<int:order_id>', views.OrderDetailView.as_view(), name='get_order'),
    path('tables/<str:table_number>', views.TableDetailView.as_view(), name='get_table'),
    path('tables/<str:table_number>/unpaid-items', views.UnpaidItemsView.as_view(), name='unpaid_items'),
    path('tables/<str:table_number>/paid-items', views.PaidItemsView.as_view(), name='paid_items'),
    path('clear-table/<str:table_number>', views.ClearTableView.as_view(), name='clear_table'),
    path('reset-table/<str:table_number>', views.ResetTableView.as_view(), name='reset_table'),
    path('admin/tables-with-orders', views.TablesWithOrdersView.as_view(), name='tables_with_orders'),
]
