"""
Partner models - clients and vendors the business trades with.
"""
from django.db import models
from django.utils.translation import gettext_lazy as _


class PartnerTypeChoices(models.TextChoices):
    """Which side of a trade the partner can appear on."""
    CLIENT = 'client', _('Client')
    VENDOR = 'vendor', _('Vendor')
    BOTH = 'both', _('Client and Vendor')


class Partner(models.Model):
    """
    A client or vendor. Invoices are issued to partners acting as clients.
    """
    name = models.CharField(_('Name'), max_length=255)
    partner_type = models.CharField(
        _('Partner Type'),
        max_length=10,
        choices=PartnerTypeChoices.choices,
        default=PartnerTypeChoices.CLIENT
    )
    gst_number = models.CharField(_('GST Number'), max_length=15, blank=True, default='')
    phone = models.CharField(_('Phone'), max_length=20, blank=True, default='')
    address = models.TextField(_('Address'), blank=True, default='')
    
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)
    
    class Meta:
        db_table = 'partners'
        ordering = ['name']
        indexes = [
            models.Index(fields=['name'], name='partners_name_idx'),
            models.Index(fields=['partner_type'], name='partners_type_idx'),
        ]
        verbose_name = _('Partner')
        verbose_name_plural = _('Partners')
    
    def __str__(self):
        return self.name
    
    @property
    def is_client(self):
        return self.partner_type in (PartnerTypeChoices.CLIENT, PartnerTypeChoices.BOTH)
