"""
URL configuration for the Sales Ledger API.
"""
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from apps.core.observability.health import HealthzView, ReadyzView, MetricsView

urlpatterns = [
    # Health checks (no auth required)
    path('healthz', HealthzView.as_view(), name='healthz'),
    path('readyz', ReadyzView.as_view(), name='readyz'),
    path('metrics', MetricsView.as_view(), name='metrics'),

    # Admin
    path('admin/', admin.site.urls),

    # Auth
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # Private API (authentication required)
    path('api/stock/', include('apps.stock.urls')),
    path('api/sales/', include('apps.sales.urls')),

    # API Schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
