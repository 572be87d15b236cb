"""Sales models - invoices and their stock-backed lines."""
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from decimal import Decimal, ROUND_HALF_UP
import uuid

TWO_PLACES = Decimal('0.01')


def money(value) -> Decimal:
    """Round to 2 decimal places, half-up."""
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class PaymentTypeChoices(models.TextChoices):
    CASH = 'cash', _('Cash')
    CREDIT = 'credit', _('Credit')
    BANK = 'bank', _('Bank Transfer')
    UPI = 'upi', _('UPI')


class PaymentStatusChoices(models.TextChoices):
    """
    Payment state of an invoice.

    - PENDING: nothing paid, paid_amount is forced to 0
    - PARTIAL: paid_amount is whatever the caller recorded
    - COMPLETE: paid_amount is forced to total_amount
    """
    PENDING = 'pending', _('Pending')
    PARTIAL = 'partial', _('Partial')
    COMPLETE = 'complete', _('Complete')


class Invoice(models.Model):
    """
    Sales invoice.

    Business Rules:
    - invoice_number is unique
    - subtotal, taxes and total are derived from the lines and are
      rewritten by apps.sales.totals after every mutation
    - pending_amount = total_amount - paid_amount
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice_number = models.CharField(
        _('Invoice Number'),
        max_length=50,
        unique=True,
        help_text=_('Human-readable invoice number (e.g., INV-2025-001)')
    )
    partner = models.ForeignKey(
        'partners.Partner',
        on_delete=models.PROTECT,
        related_name='invoices',
        verbose_name=_('Client')
    )
    invoice_date = models.DateField(_('Invoice Date'), default=timezone.localdate)

    # GST
    is_gst = models.BooleanField(_('GST Applicable'), default=True)
    cgst_rate = models.DecimalField(_('CGST Rate'), max_digits=5, decimal_places=2, default=Decimal('9'))
    sgst_rate = models.DecimalField(_('SGST Rate'), max_digits=5, decimal_places=2, default=Decimal('9'))
    igst_rate = models.DecimalField(_('IGST Rate'), max_digits=5, decimal_places=2, default=Decimal('0'))

    # Payment
    payment_type = models.CharField(
        _('Payment Type'),
        max_length=10,
        choices=PaymentTypeChoices.choices,
        default=PaymentTypeChoices.CASH
    )
    payment_status = models.CharField(
        _('Payment Status'),
        max_length=10,
        choices=PaymentStatusChoices.choices,
        default=PaymentStatusChoices.PENDING
    )

    # Derived amounts
    subtotal = models.DecimalField(
        _('Subtotal'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text=_('Sum of line amounts before tax')
    )
    cgst_amount = models.DecimalField(_('CGST Amount'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    sgst_amount = models.DecimalField(_('SGST Amount'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    igst_amount = models.DecimalField(_('IGST Amount'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(
        _('Total Amount'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text=_('Subtotal + CGST + SGST + IGST')
    )
    paid_amount = models.DecimalField(_('Paid Amount'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    pending_amount = models.DecimalField(_('Pending Amount'), max_digits=12, decimal_places=2, default=Decimal('0.00'))

    # Dispatch details
    remarks = models.TextField(_('Remarks'), blank=True, default='')
    transport_mode = models.CharField(_('Transport Mode'), max_length=50, blank=True, default='')
    transport_vehicle = models.CharField(_('Vehicle Number'), max_length=50, blank=True, default='')
    delivery_city = models.CharField(_('Delivery City'), max_length=100, blank=True, default='')

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'invoices'
        ordering = ['-invoice_date', '-created_at']
        verbose_name = _('Invoice')
        verbose_name_plural = _('Invoices')
        indexes = [
            models.Index(fields=['-invoice_date'], name='idx_invoice_date'),
            models.Index(fields=['partner', '-invoice_date'], name='idx_invoice_partner_date'),
            models.Index(fields=['payment_status'], name='idx_invoice_payment_status'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(subtotal__gte=0),
                name='invoice_subtotal_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0),
                name='invoice_total_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(paid_amount__gte=0),
                name='invoice_paid_non_negative'
            ),
        ]

    def __str__(self):
        return f"Invoice {self.invoice_number} - {self.get_payment_status_display()} - {self.total_amount}"

    @property
    def tax_amount(self):
        return self.cgst_amount + self.sgst_amount + self.igst_amount


class SaleLine(models.Model):
    """
    One product entry of an invoice, drawn from at most one lot.

    A product sold from several lots is stored as one row per lot.
    Service products have no lot and exactly one row per invoice.

    Business Rules:
    - amount = quantity * rate, recomputed on every save
    - one row per (invoice, lot); one lot-less row per (invoice, product)
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name='lines',
        verbose_name=_('Invoice')
    )
    product = models.ForeignKey(
        'products.ProductType',
        on_delete=models.PROTECT,
        related_name='sale_lines',
        verbose_name=_('Product')
    )
    lot = models.ForeignKey(
        'stock.StockLot',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='sale_lines',
        verbose_name=_('Lot'),
        help_text=_('Production batch the quantity is drawn from; empty for services')
    )

    quantity = models.PositiveIntegerField(_('Quantity'))
    rate = models.DecimalField(_('Rate'), max_digits=10, decimal_places=2)
    amount = models.DecimalField(
        _('Amount'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text=_('quantity * rate')
    )

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'sale_lines'
        ordering = ['created_at']
        verbose_name = _('Sale Line')
        verbose_name_plural = _('Sale Lines')
        constraints = [
            models.UniqueConstraint(
                fields=['invoice', 'lot'],
                condition=models.Q(lot__isnull=False),
                name='unique_lot_per_invoice'
            ),
            models.UniqueConstraint(
                fields=['invoice', 'product'],
                condition=models.Q(lot__isnull=True),
                name='unique_service_product_per_invoice'
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='sale_line_quantity_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(rate__gt=0),
                name='sale_line_rate_positive'
            ),
        ]
        indexes = [
            models.Index(fields=['invoice', 'product'], name='idx_line_invoice_product'),
            models.Index(fields=['lot'], name='idx_line_lot'),
        ]

    def __str__(self):
        return f"{self.product} x {self.quantity} @ {self.rate}"

    def save(self, *args, **kwargs):
        self.amount = money(Decimal(self.quantity) * Decimal(self.rate))
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'amount' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['amount']
        super().save(*args, **kwargs)
