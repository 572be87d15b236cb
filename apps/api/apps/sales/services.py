"""
Sale services - transaction orchestration for invoices.

Every entry point here is one unit of work: it runs inside a single
transaction.atomic() block, validates all lines before the first write,
and recomputes the invoice aggregates as its last step. Any error rolls
the whole operation back, so stock counters, lines and invoice fields
are either all updated or all untouched.
"""
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Prefetch

from apps.core.models import AppSettings
from apps.core.observability import metrics, get_sanitized_logger
from apps.core.observability.events import log_consistency_checkpoint, log_sale_event
from apps.core.observability.tracing import trace_span
from apps.partners.models import Partner
from apps.stock.models import StockLot

from . import lines as line_manager
from .exceptions import DuplicateInvoiceNumberError, SaleNotFoundError, StorageFailureError
from .lines import AllocationRequest
from .models import Invoice, PaymentStatusChoices, PaymentTypeChoices, SaleLine, money
from .totals import recompute_invoice_totals

logger = get_sanitized_logger(__name__)


@dataclass
class SalePayload:
    """Everything needed to create a sale."""
    invoice_number: str
    partner_id: int
    invoice_date: date
    is_gst: bool = True
    payment_type: str = PaymentTypeChoices.CASH
    payment_status: str = PaymentStatusChoices.PENDING
    paid_amount: Decimal = Decimal('0')
    lines: List[AllocationRequest] = field(default_factory=list)
    remarks: str = ''
    transport_mode: str = ''
    transport_vehicle: str = ''
    delivery_city: str = ''


@dataclass
class InvoicePatch:
    """Partial update of invoice-level fields; None means "leave as is"."""
    invoice_number: Optional[str] = None
    partner_id: Optional[int] = None
    invoice_date: Optional[date] = None
    is_gst: Optional[bool] = None
    payment_type: Optional[str] = None
    payment_status: Optional[str] = None
    paid_amount: Optional[Decimal] = None
    remarks: Optional[str] = None
    transport_mode: Optional[str] = None
    transport_vehicle: Optional[str] = None
    delivery_city: Optional[str] = None

    # Fields copied onto the invoice as-is
    SIMPLE_FIELDS = (
        'invoice_date',
        'is_gst',
        'payment_type',
        'payment_status',
        'remarks',
        'transport_mode',
        'transport_vehicle',
        'delivery_city',
    )

    def changed_fields(self):
        names = list(self.SIMPLE_FIELDS) + ['invoice_number', 'partner_id', 'paid_amount']
        return sorted(name for name in names if getattr(self, name) is not None)


@contextmanager
def _sale_mutation(operation, **attributes):
    """
    Unit of work for one orchestrator call: atomic block, span and metrics.

    Domain errors propagate unchanged; database errors surface as
    StorageFailureError after the rollback.
    """
    start_time = time.time()
    with trace_span(f'sales.{operation}', attributes=attributes):
        try:
            with transaction.atomic():
                yield
        except (ValidationError, ObjectDoesNotExist) as e:
            metrics.sales_mutations_total.labels(operation=operation, result='rejected').inc()
            logger.info(
                f'Sale {operation} rejected',
                extra={
                    'event': f'sale.{operation}_rejected',
                    'error_type': getattr(e, 'code', e.__class__.__name__),
                    **{key: str(value) for key, value in attributes.items()},
                }
            )
            raise
        except DatabaseError as e:
            metrics.sales_mutations_total.labels(operation=operation, result='storage_failure').inc()
            logger.error(
                f'Sale {operation} failed in storage',
                exc_info=True,
                extra={
                    'event': f'sale.{operation}_storage_failure',
                    'exception_type': e.__class__.__name__,
                }
            )
            raise StorageFailureError(operation, e) from e
        else:
            metrics.sales_mutations_total.labels(operation=operation, result='success').inc()
        finally:
            metrics.sales_mutation_duration_seconds.labels(operation=operation).observe(
                time.time() - start_time
            )


def _lock_invoice(invoice_id) -> Invoice:
    try:
        return Invoice.objects.select_for_update().get(pk=invoice_id)
    except (Invoice.DoesNotExist, ValidationError, ValueError):
        raise SaleNotFoundError('invoice', invoice_id)


def _get_partner(partner_id) -> Partner:
    try:
        return Partner.objects.get(pk=partner_id)
    except (Partner.DoesNotExist, ValueError, TypeError):
        raise SaleNotFoundError('partner', partner_id)


def _checkpoint(invoice: Invoice):
    """Record that the stored aggregates match the stored lines."""
    amounts = list(SaleLine.objects.filter(invoice=invoice).values_list('amount', flat=True))
    lots_ok = not StockLot.objects.filter(
        sale_lines__invoice=invoice, remaining_quantity__lt=0
    ).exists()
    log_consistency_checkpoint(
        'sale_totals_consistency',
        entity_ids={'invoice_id': str(invoice.id)},
        checks_passed={
            'subtotal_matches_lines': invoice.subtotal == money(sum(amounts, Decimal('0'))),
            'total_matches_taxes': invoice.total_amount == invoice.subtotal + invoice.tax_amount,
            'pending_matches_paid': invoice.pending_amount == invoice.total_amount - invoice.paid_amount,
            'no_negative_lots': lots_ok,
        },
        line_count=len(amounts),
    )


def invoice_number_exists(invoice_number: str, exclude_id=None) -> bool:
    """
    Check whether an invoice number is taken.

    Args:
        invoice_number: Number to check
        exclude_id: Invoice to ignore (the one being edited)
    """
    queryset = Invoice.objects.filter(invoice_number=invoice_number)
    if exclude_id is not None:
        queryset = queryset.exclude(pk=exclude_id)
    return queryset.exists()


def create_sale(payload: SalePayload) -> Invoice:
    """
    Create an invoice with its lines and allocate their stock.

    Sequence: invoice number uniqueness -> partner -> line validation
    (rates, quantities, lots, stock) -> invoice row -> lines and stock
    -> totals.

    Args:
        payload: SalePayload

    Returns:
        Created Invoice with recomputed totals

    Raises:
        DuplicateInvoiceNumberError: number already used
        SaleNotFoundError: partner, product or lot missing
        InvalidLineError: a line breaks a line rule
        InsufficientStockError: a lot cannot cover the request
        StorageFailureError: the transaction could not be committed
    """
    with _sale_mutation('create', invoice_number=payload.invoice_number):
        if invoice_number_exists(payload.invoice_number):
            raise DuplicateInvoiceNumberError(payload.invoice_number)
        partner = _get_partner(payload.partner_id)

        validation = line_manager.validate_requests(None, payload.lines)

        cgst_rate, sgst_rate, igst_rate = AppSettings.default_tax_rates()
        try:
            with transaction.atomic():
                invoice = Invoice.objects.create(
                    invoice_number=payload.invoice_number,
                    partner=partner,
                    invoice_date=payload.invoice_date,
                    is_gst=payload.is_gst,
                    cgst_rate=cgst_rate,
                    sgst_rate=sgst_rate,
                    igst_rate=igst_rate,
                    payment_type=payload.payment_type,
                    payment_status=payload.payment_status,
                    remarks=payload.remarks,
                    transport_mode=payload.transport_mode,
                    transport_vehicle=payload.transport_vehicle,
                    delivery_city=payload.delivery_city,
                )
        except IntegrityError:
            # Lost a race with a concurrent create of the same number
            if invoice_number_exists(payload.invoice_number):
                raise DuplicateInvoiceNumberError(payload.invoice_number)
            raise

        line_manager.set_lines(invoice, payload.lines, validation=validation)
        recompute_invoice_totals(invoice, paid_amount=payload.paid_amount)
        _checkpoint(invoice)

    log_sale_event(
        'sale.created',
        invoice,
        line_count=len(validation.lot_lines) + len(validation.service_lines),
        total_amount=str(invoice.total_amount),
    )
    return invoice


def update_sale(invoice_id, patch: InvoicePatch, lines: Optional[Sequence[AllocationRequest]] = None) -> Invoice:
    """
    Apply a partial update to an invoice, optionally reconciling its lines.

    Only fields set on ``patch`` change. When ``lines`` is given it is
    the complete desired set of lines and stock moves by the net
    difference per lot; when omitted lines and stock are untouched.
    Totals are always recomputed.

    Raises:
        SaleNotFoundError, DuplicateInvoiceNumberError, InvalidLineError,
        InsufficientStockError, StorageFailureError
    """
    with _sale_mutation('update', invoice_id=str(invoice_id)):
        invoice = _lock_invoice(invoice_id)

        if patch.invoice_number is not None and patch.invoice_number != invoice.invoice_number:
            if invoice_number_exists(patch.invoice_number, exclude_id=invoice.pk):
                raise DuplicateInvoiceNumberError(patch.invoice_number)
            invoice.invoice_number = patch.invoice_number
        if patch.partner_id is not None:
            invoice.partner = _get_partner(patch.partner_id)

        validation = None
        if lines is not None:
            validation = line_manager.validate_requests(invoice, lines)

        for name in InvoicePatch.SIMPLE_FIELDS:
            value = getattr(patch, name)
            if value is not None:
                setattr(invoice, name, value)
        invoice.save()

        if validation is not None:
            line_manager.set_lines(invoice, lines, validation=validation)
        recompute_invoice_totals(invoice, paid_amount=patch.paid_amount)
        _checkpoint(invoice)

    log_sale_event(
        'sale.updated',
        invoice,
        fields=patch.changed_fields(),
        lines_reconciled=lines is not None,
        total_amount=str(invoice.total_amount),
    )
    return invoice


def replace_sale_lines(invoice_id, lines: Sequence[AllocationRequest]) -> Invoice:
    """
    Replace every line of an invoice (edit-dialog flow).

    All current lines are deleted and their stock returned, then the new
    lines are created and allocated as on create. The lot locks are
    held across the delete and the re-create, so freed stock cannot be
    taken by another sale in between.
    """
    with _sale_mutation('replace_lines', invoice_id=str(invoice_id)):
        invoice = _lock_invoice(invoice_id)
        # Fail before touching stock; availability counts what the invoice holds
        line_manager.validate_requests(invoice, lines)

        released = line_manager.delete_all_lines(invoice)
        stored = line_manager.set_lines(invoice, lines)
        recompute_invoice_totals(invoice)
        _checkpoint(invoice)

    log_sale_event(
        'sale.lines_replaced',
        invoice,
        lines_removed=released,
        lines_stored=len(stored),
        total_amount=str(invoice.total_amount),
    )
    return invoice


def add_sale_lines(invoice_id, lines: Sequence[AllocationRequest]) -> Invoice:
    """
    Add product lines to an existing invoice and allocate their stock.

    Raises:
        InvalidLineError: a requested lot or service is already on the invoice
    """
    with _sale_mutation('add_lines', invoice_id=str(invoice_id)):
        invoice = _lock_invoice(invoice_id)
        stored = line_manager.add_lines(invoice, lines)
        recompute_invoice_totals(invoice)
        _checkpoint(invoice)

    log_sale_event(
        'sale.lines_added',
        invoice,
        lines_requested=len(lines),
        lines_stored=len(stored),
        total_amount=str(invoice.total_amount),
    )
    return invoice


def clear_sale_lines(invoice_id) -> Invoice:
    """Delete every line of an invoice, returning their stock. The invoice stays."""
    with _sale_mutation('clear_lines', invoice_id=str(invoice_id)):
        invoice = _lock_invoice(invoice_id)
        released = line_manager.delete_all_lines(invoice)
        recompute_invoice_totals(invoice)

    log_sale_event('sale.lines_cleared', invoice, lines_removed=released)
    return invoice


@dataclass
class _DeletedInvoice:
    """Identity of an invoice that no longer exists, for event logging."""
    id: object
    invoice_number: str


def delete_sale(invoice_id) -> None:
    """
    Delete an invoice and return all stock its lines held.

    Raises:
        SaleNotFoundError: invoice does not exist (including when it was
            already deleted); no stock is touched
    """
    with _sale_mutation('delete', invoice_id=str(invoice_id)):
        invoice = _lock_invoice(invoice_id)
        released = line_manager.delete_all_lines(invoice)
        invoice_number = invoice.invoice_number
        invoice.delete()

    log_sale_event('sale.deleted', _DeletedInvoice(invoice_id, invoice_number), lines_removed=released)


def get_sale(invoice_id) -> Invoice:
    """
    Load an invoice with its partner, lines, products, lots and lot locations.

    Raises:
        SaleNotFoundError: invoice does not exist
    """
    queryset = Invoice.objects.select_related('partner').prefetch_related(
        Prefetch(
            'lines',
            queryset=SaleLine.objects.select_related('product', 'lot', 'lot__location'),
        )
    )
    try:
        return queryset.get(pk=invoice_id)
    except (Invoice.DoesNotExist, ValidationError, ValueError):
        raise SaleNotFoundError('invoice', invoice_id)
