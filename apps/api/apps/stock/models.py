"""
Stock models: storage locations and production batches.

A production batch (StockLot) carries its own remaining-quantity counter.
Production owns total_quantity; the sales ledger only ever moves
remaining_quantity, through apps.stock.services.
"""
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError
from django.utils import timezone
import uuid


class StorageLocation(models.Model):
    """
    Physical location where finished goods are stored.
    
    Examples: Kiln Yard, Main Godown
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    
    name = models.CharField(_('Name'), max_length=255)
    code = models.CharField(_('Code'), max_length=50, unique=True)
    is_active = models.BooleanField(_('Active'), default=True)
    
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)
    
    class Meta:
        db_table = 'storage_locations'
        ordering = ['name']
        verbose_name = _('Storage Location')
        verbose_name_plural = _('Storage Locations')
        indexes = [
            models.Index(fields=['code'], name='idx_location_code'),
            models.Index(fields=['is_active'], name='idx_location_active'),
        ]
    
    def __str__(self):
        return f"{self.name} ({self.code})"


class StockLot(models.Model):
    """
    Production batch with an independently tracked remaining quantity.
    
    Business Rules:
    - remaining_quantity >= 0 at all times (database constraint)
    - total_quantity is fixed once the batch is recorded
    - never deleted while a sale line references it (PROTECT)
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    
    product = models.ForeignKey(
        'products.ProductType',
        on_delete=models.PROTECT,
        related_name='lots',
        verbose_name=_('Product')
    )
    location = models.ForeignKey(
        StorageLocation,
        on_delete=models.PROTECT,
        related_name='lots',
        verbose_name=_('Location')
    )
    batch_number = models.CharField(
        _('Batch Number'),
        max_length=100,
        blank=True,
        default='',
        help_text=_('Optional label printed on the batch')
    )
    production_date = models.DateField(_('Production Date'), default=timezone.localdate)
    total_quantity = models.PositiveIntegerField(
        _('Total Quantity'),
        help_text=_('Quantity produced in this batch')
    )
    remaining_quantity = models.IntegerField(
        _('Remaining Quantity'),
        help_text=_('Quantity not yet allocated to sale lines')
    )
    
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)
    
    class Meta:
        db_table = 'stock_lots'
        ordering = ['production_date', 'created_at']
        verbose_name = _('Stock Lot')
        verbose_name_plural = _('Stock Lots')
        constraints = [
            models.CheckConstraint(
                condition=models.Q(remaining_quantity__gte=0),
                name='stock_lot_remaining_non_negative'
            ),
        ]
        indexes = [
            models.Index(fields=['product', 'production_date'], name='idx_lot_prod_date'),
            models.Index(fields=['product', 'remaining_quantity'], name='idx_lot_prod_remaining'),
        ]
    
    def __str__(self):
        label = self.batch_number or self.production_date.isoformat()
        return f"{self.product.name} - {label} ({self.remaining_quantity}/{self.total_quantity})"
    
    def save(self, *args, **kwargs):
        # A freshly recorded batch starts fully available
        if self._state.adding and self.remaining_quantity is None:
            self.remaining_quantity = self.total_quantity
        super().save(*args, **kwargs)
    
    def clean(self):
        """Validate lot rules."""
        super().clean()
        
        if self.remaining_quantity is not None and self.remaining_quantity < 0:
            raise ValidationError({
                'remaining_quantity': 'Remaining quantity cannot be negative'
            })
        
        # INVARIANT: total produced is immutable after creation
        if not self._state.adding:
            original = (
                StockLot.objects.filter(pk=self.pk)
                .values_list('total_quantity', flat=True)
                .first()
            )
            if original is not None and original != self.total_quantity:
                raise ValidationError({
                    'total_quantity': 'Total quantity of a recorded batch cannot change'
                })
    
    @property
    def allocated_quantity(self):
        """Quantity currently drawn by sale lines."""
        return self.total_quantity - self.remaining_quantity
