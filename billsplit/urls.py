from django.urls import path
from . import views

urlpatterns = [
    path('bill-split/<str:table_number>', views.BillSplitView.as_view(), name='bill_split'),
    path('person/<str:session_id>/<int:person_number>', views.PersonDetailView.as_view(), name='person_detail'),
    path('person/<str:session_id>/<int:person_number>/order', views.PersonOrderView.as_view(), name='person_order'),
    path('person/<str:session_id>/<int:person_number>/complete', views.CompletePersonView.as_view(), name='complete_person'),
]
