from django.contrib import admin
from .models import Partner


@admin.register(Partner)
class PartnerAdmin(admin.ModelAdmin):
    list_display = ['name', 'partner_type', 'gst_number', 'phone']
    list_filter = ['partner_type']
    search_fields = ['name', 'gst_number', 'phone']
