"""
Initial products schema: product_types.

Generated manually on 2025-12-16
"""
from decimal import Decimal

import django.core.validators
from django.db import migrations, models

PERCENT_VALIDATORS = [
    django.core.validators.MinValueValidator(Decimal('0')),
    django.core.validators.MaxValueValidator(Decimal('100')),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ProductType',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255, unique=True, verbose_name='Name')),
                ('hsn_number', models.CharField(blank=True, default='', max_length=20, verbose_name='HSN Number')),
                ('description', models.TextField(blank=True, default='', verbose_name='Description')),
                ('is_service', models.BooleanField(default=False, verbose_name='Service')),
                ('cgst_rate', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=PERCENT_VALIDATORS, verbose_name='CGST Rate')),
                ('sgst_rate', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=PERCENT_VALIDATORS, verbose_name='SGST Rate')),
                ('igst_rate', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=PERCENT_VALIDATORS, verbose_name='IGST Rate')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
            ],
            options={
                'verbose_name': 'Product Type',
                'verbose_name_plural': 'Product Types',
                'db_table': 'product_types',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['hsn_number'], name='product_typ_hsn_num_idx'),
                ],
            },
        ),
    ]
