from django.urls import path
from . import views
from orders.views import CreateManualOrderView
from billing.views import UpsertBillView

urlpatterns = [
    path('takeaway', views.OpenTakeawayView.as_view(), name='open_takeaway'),
    path('delivery', views.OpenDeliveryView.as_view(), name='open_delivery'),
    path('<int:session_id>/', views.GetSessionView.as_view(), name='get_session'),
    path('<int:session_id>/orders', CreateManualOrderView.as_view(), name='create_manual_order'),
    path('<int:session_id>/bill', UpsertBillView.as_view(), name='upsert_bill'),
]
