"""Stock admin for locations and production batches."""
from django.contrib import admin
from .models import StorageLocation, StockLot


@admin.register(StorageLocation)
class StorageLocationAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'code']
    ordering = ['name']


@admin.register(StockLot)
class StockLotAdmin(admin.ModelAdmin):
    list_display = [
        'product', 'batch_number', 'location', 'production_date',
        'total_quantity', 'remaining_quantity'
    ]
    list_filter = ['location', 'production_date']
    search_fields = ['batch_number', 'product__name']
    date_hierarchy = 'production_date'
    ordering = ['-production_date']
    
    def get_readonly_fields(self, request, obj=None):
        """Counters of a recorded batch only change through the stock ledger."""
        if obj is not None:
            return ['total_quantity', 'remaining_quantity', 'created_at', 'updated_at']
        return ['remaining_quantity', 'created_at', 'updated_at']
