"""
Core models: app_settings

Company-wide settings used by the sales ledger.
"""
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

PERCENT_VALIDATORS = [MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))]


class AppSettings(models.Model):
    """
    Global application settings (single row).
    
    Fields:
    - id: UUID PK
    - company_name
    - gst_number: company GSTIN printed on invoices
    - cgst_rate / sgst_rate / igst_rate: default GST percentages copied
      onto every new invoice
    - created_at, updated_at
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    company_name = models.CharField(max_length=255, blank=True, default='')
    gst_number = models.CharField(max_length=15, blank=True, default='')
    cgst_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('9'),
        validators=PERCENT_VALIDATORS,
    )
    sgst_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('9'),
        validators=PERCENT_VALIDATORS,
    )
    igst_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('0'),
        validators=PERCENT_VALIDATORS,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'app_settings'
        verbose_name = 'App Settings'
        verbose_name_plural = 'App Settings'

    def __str__(self):
        return f"App Settings ({self.company_name or 'unnamed'})"

    @classmethod
    def default_tax_rates(cls):
        """
        Return (cgst, sgst, igst) percentages for a new invoice.

        Falls back to settings.SALES_LEDGER when no row has been saved.
        """
        row = cls.objects.order_by('created_at').first()
        if row is not None:
            return row.cgst_rate, row.sgst_rate, row.igst_rate
        defaults = settings.SALES_LEDGER
        return (
            Decimal(defaults['DEFAULT_CGST_RATE']),
            Decimal(defaults['DEFAULT_SGST_RATE']),
            Decimal(defaults['DEFAULT_IGST_RATE']),
        )
