"""
Product models - the catalog of goods and services that can be invoiced.
"""
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

PERCENT_VALIDATORS = [MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))]


class ProductType(models.Model):
    """
    A sellable product type.
    
    Goods are stocked in production batches (stock.StockLot). Service
    products (is_service=True) have no stock backing.
    
    The optional per-product GST rates override the invoice's rates for
    lines of this product.
    """
    name = models.CharField(_('Name'), max_length=255, unique=True)
    hsn_number = models.CharField(_('HSN Number'), max_length=20, blank=True, default='')
    description = models.TextField(_('Description'), blank=True, default='')
    is_service = models.BooleanField(_('Service'), default=False)
    
    # Tax overrides (percent); null means "use the invoice rate"
    cgst_rate = models.DecimalField(
        _('CGST Rate'), max_digits=5, decimal_places=2,
        null=True, blank=True, validators=PERCENT_VALIDATORS
    )
    sgst_rate = models.DecimalField(
        _('SGST Rate'), max_digits=5, decimal_places=2,
        null=True, blank=True, validators=PERCENT_VALIDATORS
    )
    igst_rate = models.DecimalField(
        _('IGST Rate'), max_digits=5, decimal_places=2,
        null=True, blank=True, validators=PERCENT_VALIDATORS
    )
    
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)
    
    class Meta:
        db_table = 'product_types'
        ordering = ['name']
        indexes = [
            models.Index(fields=['hsn_number'], name='product_typ_hsn_num_idx'),
        ]
        verbose_name = _('Product Type')
        verbose_name_plural = _('Product Types')
    
    def __str__(self):
        return f"{self.name} (HSN {self.hsn_number})" if self.hsn_number else self.name
