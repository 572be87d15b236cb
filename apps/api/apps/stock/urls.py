"""Stock URLs."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from .views import StockLotViewSet

router = DefaultRouter()
router.register(r'lots', StockLotViewSet, basename='stock-lot')

urlpatterns = [
    path('', include(router.urls)),
]
