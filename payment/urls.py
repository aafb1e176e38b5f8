from django.urls import path
from . import views

urlpatterns = [
    path('payment', views.SubmitPaymentView.as_view(), name='submit_payment'),
]
