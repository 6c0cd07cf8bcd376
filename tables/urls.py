from django.urls import path
from . import views

urlpatterns = [
    path('', views.TableBoardView.as_view(), name='table_board'),
    path('<int:table_id>/toggle_qr', views.ToggleQRView.as_view(), name='toggle_qr'),
    path('<int:table_id>/sessions', views.OpenDineInView.as_view(), name='open_dine_in'),
]
