from django.contrib import admin
from .models import ProductType


@admin.register(ProductType)
class ProductTypeAdmin(admin.ModelAdmin):
    list_display = ['name', 'hsn_number', 'is_service', 'cgst_rate', 'sgst_rate', 'igst_rate']
    list_filter = ['is_service']
    search_fields = ['name', 'hsn_number']
