from django.contrib import admin
from .models import AppSettings


@admin.register(AppSettings)
class AppSettingsAdmin(admin.ModelAdmin):
    list_display = ['id', 'company_name', 'gst_number', 'cgst_rate', 'sgst_rate', 'igst_rate']
    readonly_fields = ['id', 'created_at', 'updated_at']
