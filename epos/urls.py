from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='docs'),
    path('api/menu/', include('catalog.urls')),
    path('api/business-days/', include('businessday.urls')),
    path('api/tables/', include('tables.urls')),
    path('api/sessions/', include('tables.session_urls')),
    path('api/orders/', include('orders.urls')),
    path('api/bills/', include('payment.urls')),
]
