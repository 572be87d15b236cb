"""Product serializers."""
from rest_framework import serializers
from .models import ProductType


class ProductTypeSummarySerializer(serializers.ModelSerializer):
    """Compact product shape embedded in sale lines and lots."""
    
    class Meta:
        model = ProductType
        fields = ['id', 'name', 'hsn_number', 'is_service', 'cgst_rate', 'sgst_rate', 'igst_rate']
        read_only_fields = fields
