"""Request builders shared by the ledger tests."""
from decimal import Decimal

from apps.sales.lines import AllocationRequest
from apps.stock.allocation import LotAllocation


def line(product, rate, *allocations):
    """AllocationRequest for ``product`` at ``rate`` from (lot, quantity) pairs."""
    return AllocationRequest(
        product_id=product.pk,
        rate=Decimal(str(rate)),
        allocations=[
            LotAllocation(lot_id=lot.pk if lot is not None else None, quantity=quantity)
            for lot, quantity in allocations
        ],
    )


def remaining(lot):
    """Current remaining quantity of a lot, read from the database."""
    lot.refresh_from_db()
    return lot.remaining_quantity
