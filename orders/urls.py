from django.urls import path
from . import views

urlpatterns = [
    path('', views.QrOrderView.as_view(), name='qr_order'),
    path('pending', views.PendingOrdersView.as_view(), name='pending_orders'),
    path('<int:order_id>/', views.GetOrderView.as_view(), name='get_order'),
    path('<int:order_id>/accept', views.AcceptOrderView.as_view(), name='accept_order'),
    path('<int:order_id>/reject', views.RejectOrderView.as_view(), name='reject_order'),
    path('<int:order_id>/print', views.PrintOrderView.as_view(), name='print_order'),
    path('<int:order_id>/kitchen_ticket', views.KitchenTicketView.as_view(), name='kitchen_ticket'),
]
