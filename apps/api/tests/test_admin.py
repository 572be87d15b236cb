"""
Admin tests.

Header edits made in the admin change form must leave the invoice
amounts consistent with its lines.
"""
from decimal import Decimal

import pytest
from django.contrib import admin

from apps.sales import services
from apps.sales.models import Invoice, PaymentStatusChoices

from tests.helpers import line, remaining


@pytest.mark.django_db
class TestInvoiceAdmin:

    @pytest.fixture
    def invoice(self, sale_payload, brick, lot_l):
        return services.create_sale(sale_payload(line(brick, 10, (lot_l, 30))))

    @pytest.fixture
    def model_admin(self):
        return admin.site._registry[Invoice]

    def test_header_edit_recomputes_totals(self, invoice, model_admin, rf, admin_user, lot_l):
        """
        GIVEN a GST sale of 30 from L at rate 10 (total 354)
        WHEN GST is switched off and the sale marked paid in the admin
        THEN total, paid and pending follow the new header
        """
        request = rf.post('/admin/sales/invoice/')
        request.user = admin_user
        obj = Invoice.objects.get(pk=invoice.pk)
        assert obj.total_amount == Decimal('354.00')

        obj.is_gst = False
        obj.payment_status = PaymentStatusChoices.COMPLETE
        model_admin.save_model(request, obj, form=None, change=True)

        saved = Invoice.objects.get(pk=invoice.pk)
        assert saved.total_amount == Decimal('300.00')
        assert saved.paid_amount == Decimal('300.00')
        assert saved.pending_amount == Decimal('0.00')
        assert remaining(lot_l) == 70

    def test_rate_edit_recomputes_taxes(self, invoice, model_admin, rf, admin_user):
        request = rf.post('/admin/sales/invoice/')
        request.user = admin_user
        obj = Invoice.objects.get(pk=invoice.pk)

        obj.cgst_rate = Decimal('6.00')
        obj.sgst_rate = Decimal('6.00')
        model_admin.save_model(request, obj, form=None, change=True)

        saved = Invoice.objects.get(pk=invoice.pk)
        assert saved.cgst_amount == Decimal('18.00')
        assert saved.sgst_amount == Decimal('18.00')
        assert saved.total_amount == Decimal('336.00')
        assert saved.pending_amount == Decimal('336.00')

    def test_delete_not_permitted(self, model_admin, rf, admin_user):
        request = rf.get('/admin/sales/invoice/')
        request.user = admin_user
        assert model_admin.has_delete_permission(request) is False
