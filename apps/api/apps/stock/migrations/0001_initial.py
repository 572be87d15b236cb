"""
Initial stock schema: storage locations and production batches.

Business Rules Enforced:
- StockLot.remaining_quantity >= 0
- Lots referenced by sale lines cannot be deleted (PROTECT on sale_lines.lot)

Generated manually on 2025-12-16
"""
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('products', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='StorageLocation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255, verbose_name='Name')),
                ('code', models.CharField(max_length=50, unique=True, verbose_name='Code')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
            ],
            options={
                'verbose_name': 'Storage Location',
                'verbose_name_plural': 'Storage Locations',
                'db_table': 'storage_locations',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['code'], name='idx_location_code'),
                    models.Index(fields=['is_active'], name='idx_location_active'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockLot',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('batch_number', models.CharField(blank=True, default='', help_text='Optional label printed on the batch', max_length=100, verbose_name='Batch Number')),
                ('production_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Production Date')),
                ('total_quantity', models.PositiveIntegerField(help_text='Quantity produced in this batch', verbose_name='Total Quantity')),
                ('remaining_quantity', models.IntegerField(help_text='Quantity not yet allocated to sale lines', verbose_name='Remaining Quantity')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='stock.storagelocation', verbose_name='Location')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='products.producttype', verbose_name='Product')),
            ],
            options={
                'verbose_name': 'Stock Lot',
                'verbose_name_plural': 'Stock Lots',
                'db_table': 'stock_lots',
                'ordering': ['production_date', 'created_at'],
                'indexes': [
                    models.Index(fields=['product', 'production_date'], name='idx_lot_prod_date'),
                    models.Index(fields=['product', 'remaining_quantity'], name='idx_lot_prod_remaining'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(remaining_quantity__gte=0), name='stock_lot_remaining_non_negative'),
                ],
            },
        ),
    ]
