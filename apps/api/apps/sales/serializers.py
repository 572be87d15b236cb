"""
Sales serializers.

Input serializers only check the request shape and convert it into the
service dataclasses; every ledger rule is enforced in apps.sales.services.
Output serializers render the denormalized invoice read.
"""
from rest_framework import serializers

from apps.products.serializers import ProductTypeSummarySerializer
from apps.stock.allocation import LotAllocation

from .lines import AllocationRequest
from .models import Invoice, PaymentStatusChoices, PaymentTypeChoices, SaleLine
from .services import InvoicePatch, SalePayload


# ============================================================================
# Input
# ============================================================================

class LotAllocationInputSerializer(serializers.Serializer):
    lot_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    quantity = serializers.IntegerField(min_value=0)


class LineRequestSerializer(serializers.Serializer):
    """One product line: a rate and the lots to draw it from."""
    product_id = serializers.IntegerField()
    rate = serializers.DecimalField(max_digits=10, decimal_places=2)
    allocations = LotAllocationInputSerializer(many=True, required=False, default=list)


def to_allocation_requests(lines_data):
    """Convert validated line dicts into AllocationRequest objects."""
    return [
        AllocationRequest(
            product_id=line['product_id'],
            rate=line['rate'],
            allocations=[
                LotAllocation(lot_id=item.get('lot_id'), quantity=item['quantity'])
                for item in line.get('allocations', [])
            ],
        )
        for line in lines_data
    ]


class SaleCreateSerializer(serializers.Serializer):
    """
    POST /api/sales/invoices/

    {
        "invoice_number": "INV-2025-001",
        "partner_id": 4,
        "invoice_date": "2025-01-15",
        "is_gst": true,
        "payment_type": "cash",
        "payment_status": "partial",
        "paid_amount": "500.00",
        "lines": [
            {"product_id": 1, "rate": "10.00",
             "allocations": [{"lot_id": "uuid", "quantity": 30}]}
        ]
    }
    """
    invoice_number = serializers.CharField(max_length=50)
    partner_id = serializers.IntegerField()
    invoice_date = serializers.DateField()
    is_gst = serializers.BooleanField(default=True)
    payment_type = serializers.ChoiceField(
        choices=PaymentTypeChoices.choices, default=PaymentTypeChoices.CASH
    )
    payment_status = serializers.ChoiceField(
        choices=PaymentStatusChoices.choices, default=PaymentStatusChoices.PENDING
    )
    paid_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False, default=0
    )
    remarks = serializers.CharField(required=False, allow_blank=True, default='')
    transport_mode = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    transport_vehicle = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    delivery_city = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    lines = LineRequestSerializer(many=True, required=False, default=list)

    def to_payload(self) -> SalePayload:
        data = dict(self.validated_data)
        lines = to_allocation_requests(data.pop('lines', []))
        return SalePayload(lines=lines, **data)


class SaleUpdateSerializer(serializers.Serializer):
    """
    PATCH /api/sales/invoices/{id}/

    Every field is optional. ``lines``, when present, is the complete
    desired set of lines.
    """
    invoice_number = serializers.CharField(max_length=50, required=False)
    partner_id = serializers.IntegerField(required=False)
    invoice_date = serializers.DateField(required=False)
    is_gst = serializers.BooleanField(required=False)
    payment_type = serializers.ChoiceField(choices=PaymentTypeChoices.choices, required=False)
    payment_status = serializers.ChoiceField(choices=PaymentStatusChoices.choices, required=False)
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    remarks = serializers.CharField(required=False, allow_blank=True)
    transport_mode = serializers.CharField(max_length=50, required=False, allow_blank=True)
    transport_vehicle = serializers.CharField(max_length=50, required=False, allow_blank=True)
    delivery_city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    lines = LineRequestSerializer(many=True, required=False)

    def to_patch(self) -> InvoicePatch:
        data = dict(self.validated_data)
        data.pop('lines', None)
        return InvoicePatch(**data)

    def to_lines(self):
        if 'lines' not in self.validated_data:
            return None
        return to_allocation_requests(self.validated_data['lines'])


class SaleLinesSerializer(serializers.Serializer):
    """Body of PUT/POST /api/sales/invoices/{id}/lines/."""
    lines = LineRequestSerializer(many=True)

    def to_lines(self):
        return to_allocation_requests(self.validated_data['lines'])


# ============================================================================
# Output
# ============================================================================

class SaleLineSerializer(serializers.ModelSerializer):
    """Sale line with its product and lot resolved."""
    product = ProductTypeSummarySerializer(read_only=True)
    lot_id = serializers.UUIDField(read_only=True, allow_null=True)
    batch_number = serializers.CharField(source='lot.batch_number', read_only=True, default=None)
    production_date = serializers.DateField(source='lot.production_date', read_only=True, default=None)
    location_name = serializers.CharField(source='lot.location.name', read_only=True, default=None)

    class Meta:
        model = SaleLine
        fields = [
            'id', 'product', 'lot_id', 'batch_number', 'production_date', 'location_name',
            'quantity', 'rate', 'amount',
        ]
        read_only_fields = fields


class InvoiceListSerializer(serializers.ModelSerializer):
    partner_name = serializers.CharField(source='partner.name', read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_number', 'partner', 'partner_name', 'invoice_date', 'is_gst',
            'payment_type', 'payment_status', 'subtotal', 'total_amount',
            'paid_amount', 'pending_amount', 'created_at',
        ]
        read_only_fields = fields


class InvoiceDetailSerializer(serializers.ModelSerializer):
    """Invoice + partner + lines, as read by the sale detail screen and the PDF renderer."""
    partner_name = serializers.CharField(source='partner.name', read_only=True)
    partner_gst_number = serializers.CharField(source='partner.gst_number', read_only=True)
    lines = SaleLineSerializer(many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_number', 'partner', 'partner_name', 'partner_gst_number',
            'invoice_date', 'is_gst', 'cgst_rate', 'sgst_rate', 'igst_rate',
            'payment_type', 'payment_status',
            'subtotal', 'cgst_amount', 'sgst_amount', 'igst_amount', 'total_amount',
            'paid_amount', 'pending_amount',
            'remarks', 'transport_mode', 'transport_vehicle', 'delivery_city',
            'lines', 'created_at', 'updated_at',
        ]
        read_only_fields = fields
