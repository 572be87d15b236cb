"""
Invoice aggregation.

Invoice subtotal, taxes, total, paid and pending amounts are never set
directly; recompute_invoice_totals() derives them from the stored lines
and is the last step of every invoice mutation.
"""
from decimal import Decimal

from .models import Invoice, PaymentStatusChoices, SaleLine, money

HUNDRED = Decimal('100')
ZERO = Decimal('0')

TOTAL_FIELDS = [
    'subtotal',
    'cgst_amount',
    'sgst_amount',
    'igst_amount',
    'total_amount',
    'paid_amount',
    'pending_amount',
    'updated_at',
]


def line_tax_rates(product, invoice: Invoice):
    """(cgst, sgst, igst) percentages for a line: the product's own rate if set, else the invoice's."""
    return (
        product.cgst_rate if product.cgst_rate is not None else invoice.cgst_rate,
        product.sgst_rate if product.sgst_rate is not None else invoice.sgst_rate,
        product.igst_rate if product.igst_rate is not None else invoice.igst_rate,
    )


def apply_payment_status(invoice: Invoice, paid_amount=None) -> None:
    """
    Set paid_amount and pending_amount from the payment status.

    COMPLETE pays the full total, PENDING pays nothing and PARTIAL
    keeps ``paid_amount`` (or the stored value when None). total_amount
    must already be current.
    """
    if invoice.payment_status == PaymentStatusChoices.COMPLETE:
        paid = invoice.total_amount
    elif invoice.payment_status == PaymentStatusChoices.PENDING:
        paid = ZERO
    elif paid_amount is not None:
        paid = paid_amount
    else:
        paid = invoice.paid_amount

    invoice.paid_amount = money(paid)
    invoice.pending_amount = money(invoice.total_amount - invoice.paid_amount)


def recompute_invoice_totals(invoice: Invoice, paid_amount=None, save: bool = True) -> Invoice:
    """
    Re-derive every aggregate amount of ``invoice`` from its lines.

    Args:
        invoice: Invoice to recompute (saved)
        paid_amount: New paid amount for PARTIAL invoices, None to keep
        save: Persist the recomputed fields

    Returns:
        The same invoice instance, updated in place
    """
    lines = SaleLine.objects.filter(invoice=invoice).select_related('product')

    subtotal = cgst = sgst = igst = ZERO
    for line in lines:
        subtotal += line.amount
        if invoice.is_gst:
            cgst_rate, sgst_rate, igst_rate = line_tax_rates(line.product, invoice)
            cgst += line.amount * cgst_rate / HUNDRED
            sgst += line.amount * sgst_rate / HUNDRED
            igst += line.amount * igst_rate / HUNDRED

    invoice.subtotal = money(subtotal)
    invoice.cgst_amount = money(cgst)
    invoice.sgst_amount = money(sgst)
    invoice.igst_amount = money(igst)
    invoice.total_amount = (
        invoice.subtotal + invoice.cgst_amount + invoice.sgst_amount + invoice.igst_amount
    )
    apply_payment_status(invoice, paid_amount)

    if save:
        invoice.save(update_fields=TOTAL_FIELDS)
    return invoice
