"""
Stock services - the per-lot stock ledger.

Every change to StockLot.remaining_quantity goes through allocate(),
release() or adjust_by(). Writes are conditional F() updates, so a
decrement that would take a lot below zero matches no row and is
reported as InsufficientStockError instead of being stored.

Callers are expected to run inside transaction.atomic() and to have
locked the lots they touch with lock_lots(); the ledger itself never
commits or rolls back.

Successful movements are counted and logged on commit. Insufficient
stock is counted and logged when it is detected, as a rejected attempt.
"""
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from typing import Dict, Iterable

from apps.core.observability import metrics, get_sanitized_logger
from apps.core.observability.events import log_insufficient_stock, log_stock_movement

from .models import StockLot

logger = get_sanitized_logger(__name__)


class InsufficientStockError(ValidationError):
    """Raised when a lot does not hold enough remaining stock."""

    def __init__(self, lot_id, available, requested):
        super().__init__(
            'Insufficient stock in lot %(lot_id)s: available %(available)s, requested %(requested)s',
            code='insufficient_stock',
            params={
                'lot_id': str(lot_id),
                'available': available,
                'requested': requested,
            },
        )
        self.lot_id = lot_id
        self.available = available
        self.requested = requested


def _lot_pk(lot):
    return lot.pk if isinstance(lot, StockLot) else lot


def _sync_instance(lot):
    """Keep a caller's StockLot instance in step with the stored counter."""
    if isinstance(lot, StockLot):
        lot.refresh_from_db(fields=['remaining_quantity'])


def _missing_lot(lot_id):
    return StockLot.DoesNotExist(f'StockLot {lot_id} does not exist')


def _record_movement(operation, event_name, lot_id, quantity):
    """
    Count and log a stock movement once the surrounding transaction commits.

    A movement inside a unit of work that later rolls back never
    happened, so it is neither counted nor logged.
    """
    def _emit():
        metrics.stock_ledger_operations_total.labels(
            operation=operation, result='success'
        ).inc()
        log_stock_movement(event_name, lot_id, quantity)

    transaction.on_commit(_emit)


def allocate(lot, quantity: int) -> None:
    """
    Take ``quantity`` units out of a lot's remaining stock.

    Args:
        lot: StockLot instance or primary key
        quantity: Units to consume (positive)

    Raises:
        ValueError: quantity is not positive
        InsufficientStockError: quantity exceeds remaining_quantity
        StockLot.DoesNotExist: no such lot
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    lot_id = _lot_pk(lot)
    updated = StockLot.objects.filter(
        pk=lot_id,
        remaining_quantity__gte=quantity,
    ).update(
        remaining_quantity=F('remaining_quantity') - quantity,
        updated_at=timezone.now(),
    )

    if not updated:
        available = (
            StockLot.objects.filter(pk=lot_id)
            .values_list('remaining_quantity', flat=True)
            .first()
        )
        if available is None:
            raise _missing_lot(lot_id)

        metrics.stock_ledger_operations_total.labels(
            operation='allocate', result='insufficient'
        ).inc()
        metrics.stock_insufficient_total.inc()
        log_insufficient_stock(lot_id, requested=quantity, available=available)
        raise InsufficientStockError(lot_id, available=available, requested=quantity)

    _record_movement('allocate', 'stock.allocated', lot_id, quantity)
    _sync_instance(lot)


def release(lot, quantity: int) -> None:
    """
    Return ``quantity`` units to a lot's remaining stock.

    There is no upper bound: returning more than was ever allocated is
    a caller error and is not detected here.

    Raises:
        ValueError: quantity is not positive
        StockLot.DoesNotExist: no such lot
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    lot_id = _lot_pk(lot)
    updated = StockLot.objects.filter(pk=lot_id).update(
        remaining_quantity=F('remaining_quantity') + quantity,
        updated_at=timezone.now(),
    )
    if not updated:
        raise _missing_lot(lot_id)

    _record_movement('release', 'stock.released', lot_id, quantity)
    _sync_instance(lot)


def adjust_by(lot, delta: int) -> None:
    """
    Apply a signed net change to a lot.

    Positive delta consumes more stock (allocate), negative delta
    returns stock (release). Zero is a no-op.
    """
    if delta > 0:
        allocate(lot, delta)
    elif delta < 0:
        release(lot, -delta)


def lock_lots(lot_ids: Iterable) -> Dict:
    """
    Lock lot rows with SELECT ... FOR UPDATE, in primary-key order.

    Must be called inside transaction.atomic(). Locking in a fixed order
    keeps two mutations over overlapping lots from deadlocking.

    Returns:
        Dict of lot id -> StockLot for the ids that exist. Missing ids
        are simply absent; the caller decides whether that is an error.
    """
    ids = {lot_id for lot_id in lot_ids if lot_id is not None}
    if not ids:
        return {}

    lots = (
        StockLot.objects.select_for_update()
        .filter(pk__in=ids)
        .order_by('pk')
    )
    return {lot.pk: lot for lot in lots}


def get_available_lots(product):
    """
    Lots of ``product`` that still have stock, oldest production first.
    """
    return (
        StockLot.objects.filter(product=product, remaining_quantity__gt=0)
        .select_related('location', 'product')
        .order_by('production_date', 'created_at')
    )
