"""Stock serializers."""
from rest_framework import serializers
from .models import StorageLocation, StockLot


class StorageLocationSerializer(serializers.ModelSerializer):
    """Serializer for StorageLocation."""
    
    class Meta:
        model = StorageLocation
        fields = ['id', 'name', 'code', 'is_active']
        read_only_fields = fields


class StockLotSerializer(serializers.ModelSerializer):
    """Production batch with product and location resolved, for the sale form."""
    
    product_name = serializers.CharField(source='product.name', read_only=True)
    location = StorageLocationSerializer(read_only=True)
    allocated_quantity = serializers.IntegerField(read_only=True)
    
    class Meta:
        model = StockLot
        fields = [
            'id', 'product', 'product_name', 'location',
            'batch_number', 'production_date',
            'total_quantity', 'remaining_quantity', 'allocated_quantity',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields
