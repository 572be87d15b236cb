"""
Initial partners schema.

Generated manually on 2025-12-16
"""
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Partner',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255, verbose_name='Name')),
                ('partner_type', models.CharField(choices=[('client', 'Client'), ('vendor', 'Vendor'), ('both', 'Client and Vendor')], default='client', max_length=10, verbose_name='Partner Type')),
                ('gst_number', models.CharField(blank=True, default='', max_length=15, verbose_name='GST Number')),
                ('phone', models.CharField(blank=True, default='', max_length=20, verbose_name='Phone')),
                ('address', models.TextField(blank=True, default='', verbose_name='Address')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
            ],
            options={
                'verbose_name': 'Partner',
                'verbose_name_plural': 'Partners',
                'db_table': 'partners',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['name'], name='partners_name_idx'),
                    models.Index(fields=['partner_type'], name='partners_type_idx'),
                ],
            },
        ),
    ]
