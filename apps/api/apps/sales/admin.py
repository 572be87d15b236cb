from django.contrib import admin
from django.db import transaction

from .models import Invoice, SaleLine
from .totals import recompute_invoice_totals


class SaleLineInline(admin.TabularInline):
    """
    Read-only inline for sale lines.
    
    Lines move stock, so they are only written through apps.sales.services.
    """
    model = SaleLine
    extra = 0
    fields = ['product', 'lot', 'quantity', 'rate', 'amount']
    readonly_fields = fields
    can_delete = False
    
    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'partner', 'invoice_date', 'payment_status', 'total_amount', 'pending_amount']
    list_filter = ['payment_status', 'payment_type', 'is_gst', 'invoice_date']
    search_fields = ['invoice_number', 'partner__name']
    readonly_fields = [
        'id', 'subtotal', 'cgst_amount', 'sgst_amount', 'igst_amount',
        'total_amount', 'paid_amount', 'pending_amount', 'created_at', 'updated_at',
    ]
    inlines = [SaleLineInline]
    
    fieldsets = (
        ('Basic Information', {
            'fields': ('id', 'invoice_number', 'partner', 'invoice_date', 'is_gst')
        }),
        ('Tax Rates', {
            'fields': ('cgst_rate', 'sgst_rate', 'igst_rate')
        }),
        ('Payment', {
            'fields': ('payment_type', 'payment_status')
        }),
        ('Amounts', {
            'fields': (
                'subtotal', 'cgst_amount', 'sgst_amount', 'igst_amount',
                'total_amount', 'paid_amount', 'pending_amount',
            )
        }),
        ('Dispatch', {
            'fields': ('remarks', 'transport_mode', 'transport_vehicle', 'delivery_city'),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
    
    def save_model(self, request, obj, form, change):
        """
        Save the header, then re-derive the amounts from the lines.

        GST, tax rates and payment status all feed the totals, so the
        save and the recompute share one transaction.
        """
        with transaction.atomic():
            super().save_model(request, obj, form, change)
            recompute_invoice_totals(obj)

    def has_delete_permission(self, request, obj=None):
        """Deleting must return stock; use the API."""
        return False
