"""
Sale line manager.

Keeps an invoice's SaleLine rows and the stock they hold in step with a
list of AllocationRequests. Rows are stored one per (invoice, lot); a
service product is a single lot-less row per invoice.

Nothing here opens or commits a transaction. The orchestrator in
apps.sales.services wraps every call in transaction.atomic(), and
validate_requests() takes the lot row locks that the rest of the unit
of work relies on.
"""
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Sequence

from apps.core.observability import get_sanitized_logger
from apps.products.models import ProductType
from apps.stock.allocation import (
    LotAllocation,
    ReconciliationPlan,
    apply_reconciliation,
    check_availability,
    normalize_allocations,
    plan_reconciliation,
)
from apps.stock.services import lock_lots

from .exceptions import InvalidLineError, SaleNotFoundError
from .models import Invoice, SaleLine, money

logger = get_sanitized_logger(__name__)


@dataclass
class AllocationRequest:
    """Desired state of one product line: a rate and the lots to draw from."""
    product_id: object
    rate: Decimal
    allocations: List[LotAllocation] = field(default_factory=list)


@dataclass
class DesiredLine:
    """A validated SaleLine row to store."""
    product: ProductType
    rate: Decimal
    quantity: int
    line_index: int
    lot_id: Optional[uuid.UUID] = None


@dataclass
class LineValidation:
    """Outcome of validate_requests(), consumed by set_lines()."""
    lot_lines: Dict = field(default_factory=dict)
    service_lines: Dict = field(default_factory=dict)
    plan: ReconciliationPlan = field(default_factory=ReconciliationPlan)
    lots: Dict = field(default_factory=dict)


def _coerce_product_id(value, index):
    error = InvalidLineError(
        'Invalid product id', product_id=value, line_index=index, field='product_id'
    )
    if isinstance(value, bool):
        raise error
    try:
        product_id = int(value)
    except (TypeError, ValueError, OverflowError):
        raise error
    # int() truncates 3.5 and Decimal('3.5'); only whole numbers name a product
    if not isinstance(value, str) and product_id != value:
        raise error
    return product_id


def _coerce_lot_id(value, product_id, index):
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise InvalidLineError(
            f'Invalid lot id {value}', product_id=product_id, line_index=index, field='lot_id'
        )


def _coerce_rate(value, product_id, index):
    try:
        rate = money(Decimal(str(value)))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidLineError(
            'Rate must be a number', product_id=product_id, line_index=index, field='rate'
        )
    if rate <= 0:
        raise InvalidLineError(
            'Rate must be greater than zero', product_id=product_id, line_index=index, field='rate'
        )
    return rate


def _held_allocations(invoice: Optional[Invoice]) -> Dict:
    """lot id -> quantity currently held by the invoice's lines."""
    if invoice is None or invoice._state.adding:
        return {}
    rows = SaleLine.objects.filter(invoice=invoice, lot__isnull=False).values_list('lot_id', 'quantity')
    return normalize_allocations(rows)


def validate_requests(invoice: Optional[Invoice], requests: Sequence[AllocationRequest]) -> LineValidation:
    """
    Check a full set of line requests before anything is written.

    Checks run in this order, and the first failure is raised:
        1. shape: product ids are whole numbers, rate > 0, quantities
           are integers >= 0
        2. existence of every product and lot
        3. non-service lines name a valid lot for every quantity and ask
           for a positive total; lot ids of service lines are ignored
        4. every lot belongs to its request's product
        5. per-lot demand summed over all requests fits in
           remaining + what this invoice already holds
        6. a lot (or service product) appears in one request only

    Locks every lot the invoice holds or asks for. Must run inside
    transaction.atomic().

    Args:
        invoice: Invoice whose current lines are the previous state, or
            None for a sale that does not exist yet
        requests: Desired lines

    Returns:
        LineValidation with the rows to store and the ledger plan

    Raises:
        InvalidLineError, SaleNotFoundError, InsufficientStockError
    """
    parsed = []
    for index, request in enumerate(requests):
        product_id = _coerce_product_id(request.product_id, index)
        rate = _coerce_rate(request.rate, product_id, index)
        pairs = []
        for allocation in request.allocations:
            quantity = allocation.quantity
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
                raise InvalidLineError(
                    'Quantity must be a non-negative integer',
                    product_id=product_id, line_index=index, field='quantity'
                )
            pairs.append((allocation.lot_id, quantity))
        parsed.append((index, product_id, rate, pairs))

    products = ProductType.objects.in_bulk({product_id for _, product_id, _, _ in parsed})
    for _, product_id, _, _ in parsed:
        if product_id not in products:
            raise SaleNotFoundError('product', product_id)

    lot_requests = []
    service_requests = []
    for index, product_id, rate, pairs in parsed:
        product = products[product_id]
        if product.is_service:
            quantity = sum(quantity for _, quantity in pairs) or 1
            service_requests.append(DesiredLine(product, rate, quantity, index))
            continue
        pairs = [(_coerce_lot_id(lot_id, product_id, index), quantity) for lot_id, quantity in pairs]
        if any(lot_id is None for lot_id, quantity in pairs if quantity):
            raise InvalidLineError(
                f'{product.name} needs a lot for every quantity',
                product_id=product_id, line_index=index, field='lot_id'
            )
        wanted = normalize_allocations(pairs)
        if sum(wanted.values()) <= 0:
            raise InvalidLineError(
                f'{product.name} needs a quantity greater than zero',
                product_id=product_id, line_index=index, field='quantity'
            )
        lot_requests.append((index, product, rate, wanted))

    previous = _held_allocations(invoice)
    requested_lot_ids = {lot_id for _, _, _, wanted in lot_requests for lot_id in wanted}
    lots = lock_lots(set(previous) | requested_lot_ids)
    for lot_id in sorted(requested_lot_ids, key=str):
        if lot_id not in lots:
            raise SaleNotFoundError('lot', lot_id)

    for index, product, _, wanted in lot_requests:
        for lot_id in wanted:
            if lots[lot_id].product_id != product.pk:
                raise InvalidLineError(
                    f'Lot {lot_id} does not belong to {product.name}',
                    product_id=product.pk, line_index=index, field='lot_id'
                )

    desired: Dict = {}
    for _, _, _, wanted in lot_requests:
        for lot_id, quantity in wanted.items():
            desired[lot_id] = desired.get(lot_id, 0) + quantity
    plan = plan_reconciliation(previous, desired)
    check_availability(plan, lots)

    validation = LineValidation(plan=plan, lots=lots)
    for index, product, rate, wanted in lot_requests:
        for lot_id, quantity in wanted.items():
            if lot_id in validation.lot_lines:
                raise InvalidLineError(
                    f'Lot {lot_id} is requested by more than one line',
                    product_id=product.pk, line_index=index, field='allocations'
                )
            validation.lot_lines[lot_id] = DesiredLine(product, rate, quantity, index, lot_id)
    for line in service_requests:
        if line.product.pk in validation.service_lines:
            raise InvalidLineError(
                f'{line.product.name} is requested by more than one line',
                product_id=line.product.pk, line_index=line.line_index, field='product_id'
            )
        validation.service_lines[line.product.pk] = line

    return validation


def set_lines(
    invoice: Invoice,
    requests: Sequence[AllocationRequest],
    validation: Optional[LineValidation] = None,
) -> List[SaleLine]:
    """
    Make the invoice's lines and held stock match ``requests``.

    Rows for lots kept by the request are updated in place, rows for new
    lots are created and rows for lots no longer requested are deleted.
    Stock moves by the net difference per lot only.

    Args:
        invoice: Saved invoice
        requests: Complete desired set of lines
        validation: Result of validate_requests() for the same
            arguments, when the caller already ran it

    Returns:
        The invoice's lines after the change
    """
    if validation is None:
        validation = validate_requests(invoice, requests)

    apply_reconciliation(validation.plan)

    existing = list(SaleLine.objects.filter(invoice=invoice))
    by_lot = {line.lot_id: line for line in existing if line.lot_id is not None}
    by_service = {line.product_id: line for line in existing if line.lot_id is None}

    for lot_id, wanted in validation.lot_lines.items():
        _store_line(invoice, by_lot.pop(lot_id, None), wanted)
    for product_id, wanted in validation.service_lines.items():
        _store_line(invoice, by_service.pop(product_id, None), wanted)

    stale = [line.pk for line in list(by_lot.values()) + list(by_service.values())]
    if stale:
        SaleLine.objects.filter(pk__in=stale).delete()

    logger.debug(
        'Sale lines set',
        extra={
            'invoice_id': str(invoice.id),
            'lines_stored': len(validation.lot_lines) + len(validation.service_lines),
            'lines_removed': len(stale),
        }
    )
    return list(SaleLine.objects.filter(invoice=invoice).select_related('product', 'lot'))


def _store_line(invoice, line, wanted: DesiredLine):
    if line is None:
        line = SaleLine(invoice=invoice, product=wanted.product, lot_id=wanted.lot_id)
    elif line.quantity == wanted.quantity and line.rate == wanted.rate:
        return line
    line.quantity = wanted.quantity
    line.rate = wanted.rate
    line.save()
    return line


def add_lines(invoice: Invoice, requests: Sequence[AllocationRequest]) -> List[SaleLine]:
    """
    Append lines to an invoice, keeping its current lines untouched.

    A lot or service product the invoice already holds is rejected;
    edit the existing line instead.
    """
    current = list(SaleLine.objects.filter(invoice=invoice))
    held_lots = {line.lot_id for line in current if line.lot_id is not None}
    held_services = {line.product_id for line in current if line.lot_id is None}

    for index, request in enumerate(requests):
        try:
            product_id = _coerce_product_id(request.product_id, index)
        except InvalidLineError:
            continue
        if product_id in held_services:
            raise InvalidLineError(
                'Service is already on this invoice',
                product_id=product_id, line_index=index, field='product_id'
            )
        for allocation in request.allocations:
            try:
                lot_id = _coerce_lot_id(allocation.lot_id, product_id, index)
            except InvalidLineError:
                continue
            if lot_id in held_lots and allocation.quantity:
                raise InvalidLineError(
                    f'Lot {lot_id} is already on this invoice',
                    product_id=product_id, line_index=index, field='lot_id'
                )

    # New requests first so that error indexes match the caller's list
    combined = list(requests) + [
        AllocationRequest(
            product_id=line.product_id,
            rate=line.rate,
            allocations=[LotAllocation(line.lot_id, line.quantity)],
        )
        for line in current
    ]
    return set_lines(invoice, combined)


def delete_all_lines(invoice: Invoice) -> int:
    """
    Return all stock held by the invoice and delete its lines.

    Returns:
        Number of lines deleted
    """
    previous = _held_allocations(invoice)
    lock_lots(previous)
    apply_reconciliation(plan_reconciliation(previous, {}))
    deleted, _ = SaleLine.objects.filter(invoice=invoice).delete()
    return deleted
