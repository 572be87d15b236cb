"""
Initial sales schema: invoices and sale lines.

Business Rules Enforced:
- invoice_number unique
- subtotal, total_amount, paid_amount >= 0
- one sale line per (invoice, lot); one lot-less line per (invoice, product)
- sale line quantity > 0 and rate > 0

Generated manually on 2025-12-16
"""
from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('partners', '0001_initial'),
        ('products', '0001_initial'),
        ('stock', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Invoice',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('invoice_number', models.CharField(help_text='Human-readable invoice number (e.g., INV-2025-001)', max_length=50, unique=True, verbose_name='Invoice Number')),
                ('invoice_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Invoice Date')),
                ('is_gst', models.BooleanField(default=True, verbose_name='GST Applicable')),
                ('cgst_rate', models.DecimalField(decimal_places=2, default=Decimal('9'), max_digits=5, verbose_name='CGST Rate')),
                ('sgst_rate', models.DecimalField(decimal_places=2, default=Decimal('9'), max_digits=5, verbose_name='SGST Rate')),
                ('igst_rate', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=5, verbose_name='IGST Rate')),
                ('payment_type', models.CharField(choices=[('cash', 'Cash'), ('credit', 'Credit'), ('bank', 'Bank Transfer'), ('upi', 'UPI')], default='cash', max_length=10, verbose_name='Payment Type')),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('partial', 'Partial'), ('complete', 'Complete')], default='pending', max_length=10, verbose_name='Payment Status')),
                ('subtotal', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Sum of line amounts before tax', max_digits=12, verbose_name='Subtotal')),
                ('cgst_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='CGST Amount')),
                ('sgst_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='SGST Amount')),
                ('igst_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='IGST Amount')),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Subtotal + CGST + SGST + IGST', max_digits=12, verbose_name='Total Amount')),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Paid Amount')),
                ('pending_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Pending Amount')),
                ('remarks', models.TextField(blank=True, default='', verbose_name='Remarks')),
                ('transport_mode', models.CharField(blank=True, default='', max_length=50, verbose_name='Transport Mode')),
                ('transport_vehicle', models.CharField(blank=True, default='', max_length=50, verbose_name='Vehicle Number')),
                ('delivery_city', models.CharField(blank=True, default='', max_length=100, verbose_name='Delivery City')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('partner', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='invoices', to='partners.partner', verbose_name='Client')),
            ],
            options={
                'verbose_name': 'Invoice',
                'verbose_name_plural': 'Invoices',
                'db_table': 'invoices',
                'ordering': ['-invoice_date', '-created_at'],
                'indexes': [
                    models.Index(fields=['-invoice_date'], name='idx_invoice_date'),
                    models.Index(fields=['partner', '-invoice_date'], name='idx_invoice_partner_date'),
                    models.Index(fields=['payment_status'], name='idx_invoice_payment_status'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(subtotal__gte=0), name='invoice_subtotal_non_negative'),
                    models.CheckConstraint(condition=models.Q(total_amount__gte=0), name='invoice_total_non_negative'),
                    models.CheckConstraint(condition=models.Q(paid_amount__gte=0), name='invoice_paid_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SaleLine',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantity')),
                ('rate', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Rate')),
                ('amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='quantity * rate', max_digits=12, verbose_name='Amount')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('invoice', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='sales.invoice', verbose_name='Invoice')),
                ('lot', models.ForeignKey(blank=True, help_text='Production batch the quantity is drawn from; empty for services', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='sale_lines', to='stock.stocklot', verbose_name='Lot')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sale_lines', to='products.producttype', verbose_name='Product')),
            ],
            options={
                'verbose_name': 'Sale Line',
                'verbose_name_plural': 'Sale Lines',
                'db_table': 'sale_lines',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['invoice', 'product'], name='idx_line_invoice_product'),
                    models.Index(fields=['lot'], name='idx_line_lot'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(lot__isnull=False), fields=('invoice', 'lot'), name='unique_lot_per_invoice'),
                    models.UniqueConstraint(condition=models.Q(lot__isnull=True), fields=('invoice', 'product'), name='unique_service_product_per_invoice'),
                    models.CheckConstraint(condition=models.Q(quantity__gt=0), name='sale_line_quantity_positive'),
                    models.CheckConstraint(condition=models.Q(rate__gt=0), name='sale_line_rate_positive'),
                ],
            },
        ),
    ]
