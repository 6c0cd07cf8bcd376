from django.urls import path
from . import views
from billing.views import GetBillView

urlpatterns = [
    path('<int:bill_id>/', GetBillView.as_view(), name='get_bill'),
    path('<int:bill_id>/pay', views.TakePaymentView.as_view(), name='take_payment'),
    path('<int:bill_id>/receipt', views.ReceiptView.as_view(), name='receipt'),
]
