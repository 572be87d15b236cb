"""
Allocation reconciliation: moving a set of lot allocations from what a
sale currently holds (previous) to what it should hold (desired).

Both sides are plain ``{lot_id: quantity}`` maps. The plan splits lots
into three groups:

- in both maps: adjust by ``desired - previous`` (skipped when zero)
- only in desired: allocate the desired quantity
- only in previous: release the previous quantity

Zero quantities are dropped while normalizing, so a zero in desired
means "remove this lot".
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping

from apps.core.observability import metrics
from apps.core.observability.events import log_insufficient_stock

from . import services
from .services import InsufficientStockError


@dataclass(frozen=True)
class LotAllocation:
    """How much of one line is drawn from one lot."""
    lot_id: object
    quantity: int


@dataclass
class ReconciliationPlan:
    """Ledger operations that turn ``previous`` into ``desired``."""
    previous: Dict = field(default_factory=dict)
    desired: Dict = field(default_factory=dict)
    allocations: Dict = field(default_factory=dict)
    adjustments: Dict = field(default_factory=dict)
    releases: Dict = field(default_factory=dict)

    @property
    def lot_ids(self):
        """Every lot the transition touches, kept or not."""
        return set(self.previous) | set(self.desired)

    @property
    def is_noop(self):
        return not (self.allocations or self.adjustments or self.releases)

    def net_change(self, lot_id) -> int:
        """Signed consumption for a lot; positive draws stock, negative returns it."""
        return self.desired.get(lot_id, 0) - self.previous.get(lot_id, 0)


def normalize_allocations(pairs: Iterable) -> Dict:
    """
    Collapse allocation pairs into a ``{lot_id: quantity}`` map.

    Accepts LotAllocation objects or ``(lot_id, quantity)`` tuples.
    Repeated lots are summed and zero quantities are dropped.

    Raises:
        ValueError: a quantity is negative or not an integer
    """
    result: Dict = {}
    for pair in pairs:
        if isinstance(pair, LotAllocation):
            lot_id, quantity = pair.lot_id, pair.quantity
        else:
            lot_id, quantity = pair

        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValueError(f"quantity for lot {lot_id} must be an integer")
        if quantity < 0:
            raise ValueError(f"quantity for lot {lot_id} cannot be negative")
        if quantity == 0:
            continue
        result[lot_id] = result.get(lot_id, 0) + quantity
    return result


def plan_reconciliation(previous, desired) -> ReconciliationPlan:
    """
    Compute the ledger operations that move ``previous`` to ``desired``.

    Either side may be a mapping or an iterable of allocation pairs.
    """
    prev_map = normalize_allocations(
        previous.items() if isinstance(previous, Mapping) else previous
    )
    want_map = normalize_allocations(
        desired.items() if isinstance(desired, Mapping) else desired
    )

    plan = ReconciliationPlan(previous=prev_map, desired=want_map)
    for lot_id, quantity in want_map.items():
        if lot_id in prev_map:
            delta = quantity - prev_map[lot_id]
            if delta:
                plan.adjustments[lot_id] = delta
        else:
            plan.allocations[lot_id] = quantity
    for lot_id, quantity in prev_map.items():
        if lot_id not in want_map:
            plan.releases[lot_id] = quantity
    return plan


def check_availability(plan: ReconciliationPlan, lots: Mapping) -> None:
    """
    Verify every lot can cover what the plan wants from it.

    A lot may always keep or shrink what it already holds for this
    sale; only growth is checked, against
    ``remaining + previously held``.

    Args:
        plan: ReconciliationPlan to check
        lots: lot id -> StockLot, freshly read under lock

    Raises:
        InsufficientStockError: for the first lot (in id order) that
            cannot cover its desired quantity
    """
    for lot_id in sorted(plan.desired, key=str):
        if plan.net_change(lot_id) <= 0:
            continue
        available = lots[lot_id].remaining_quantity + plan.previous.get(lot_id, 0)
        requested = plan.desired[lot_id]
        if requested > available:
            metrics.stock_insufficient_total.inc()
            log_insufficient_stock(lot_id, requested=requested, available=available)
            raise InsufficientStockError(lot_id, available=available, requested=requested)


def apply_reconciliation(plan: ReconciliationPlan) -> None:
    """
    Run the plan against the stock ledger.

    Each lot is adjusted independently; releases go first so that stock
    freed by this plan is already back on the counter. Any ledger error
    propagates and the enclosing transaction rolls the rest back.
    """
    for lot_id in sorted(plan.releases, key=str):
        services.release(lot_id, plan.releases[lot_id])
    for lot_id in sorted(plan.adjustments, key=str):
        services.adjust_by(lot_id, plan.adjustments[lot_id])
    for lot_id in sorted(plan.allocations, key=str):
        services.allocate(lot_id, plan.allocations[lot_id])
