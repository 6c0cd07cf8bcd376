from django.urls import path
from . import views
from reports.views import EndOfDayReportView

urlpatterns = [
    path('current', views.CurrentBusinessDayView.as_view(), name='current_business_day'),
    path('open', views.OpenBusinessDayView.as_view(), name='open_business_day'),
    path('<int:day_id>/close', views.CloseBusinessDayView.as_view(), name='close_business_day'),
    path('<int:day_id>/report', EndOfDayReportView.as_view(), name='end_of_day_report'),
]
