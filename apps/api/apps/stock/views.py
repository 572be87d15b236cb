"""Stock views: read-only access to production batches."""
from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from .models import StockLot
from .serializers import StockLotSerializer
from .services import get_available_lots


class StockLotViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Production batches.
    
    Query params:
    - product: only lots of this product type
    - available: "true" to list only lots with remaining stock
      (requires product)
    """
    
    queryset = StockLot.objects.select_related('product', 'location').all()
    serializer_class = StockLotSerializer
    permission_classes = [IsAuthenticated]
    search_fields = ['batch_number', 'product__name']
    ordering_fields = ['production_date', 'remaining_quantity']
    ordering = ['production_date', 'created_at']
    
    def get_queryset(self):
        product = self.request.query_params.get('product')
        available = self.request.query_params.get('available', '').lower() in ('true', '1')
        if product and not product.isdigit():
            return StockLot.objects.none()

        if product and available:
            return get_available_lots(product)
        
        queryset = super().get_queryset()
        if product:
            queryset = queryset.filter(product_id=product)
        if available:
            queryset = queryset.filter(remaining_quantity__gt=0)
        return queryset
