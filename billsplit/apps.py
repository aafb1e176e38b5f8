from django.apps import AppConfig


class BillsplitConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'billsplit'
