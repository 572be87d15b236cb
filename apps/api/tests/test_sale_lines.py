"""
Sale line manager tests.

Test coverage:
1. validate_requests() rule order and error details
2. set_lines() creates, resizes and removes lot rows by net difference
3. service products bypass lots
4. add_lines() and delete_all_lines()
"""
import uuid
from decimal import Decimal

import pytest

from apps.sales import lines as line_manager
from apps.sales.exceptions import InvalidLineError, SaleNotFoundError
from apps.sales.lines import AllocationRequest
from apps.sales.models import Invoice, SaleLine
from apps.stock.allocation import LotAllocation
from apps.stock.services import InsufficientStockError

from tests.helpers import line, remaining


@pytest.fixture
def invoice(client_partner):
    return Invoice.objects.create(invoice_number='INV-L-1', partner=client_partner)


def rows(invoice):
    return {
        (row.lot_id, row.product_id): (row.quantity, row.rate, row.amount)
        for row in SaleLine.objects.filter(invoice=invoice)
    }


# ============================================================================
# Validation
# ============================================================================

@pytest.mark.django_db
class TestValidateRequests:
    """Every rule fires before anything is written."""

    @pytest.mark.parametrize('rate', ['0', '-1'])
    def test_rate_must_be_positive(self, invoice, brick, lot_l, rate):
        with pytest.raises(InvalidLineError) as exc_info:
            line_manager.validate_requests(invoice, [line(brick, rate, (lot_l, 10))])

        assert exc_info.value.field == 'rate'
        assert exc_info.value.line_index == 0
        assert exc_info.value.code == 'invalid_line'

    def test_negative_quantity_rejected(self, invoice, brick, lot_l):
        with pytest.raises(InvalidLineError) as exc_info:
            line_manager.validate_requests(invoice, [line(brick, 10, (lot_l, -1))])

        assert exc_info.value.field == 'quantity'

    def test_zero_total_quantity_rejected_for_goods(self, invoice, brick, lot_l):
        with pytest.raises(InvalidLineError) as exc_info:
            line_manager.validate_requests(invoice, [line(brick, 10, (lot_l, 0))])

        assert exc_info.value.field == 'quantity'
        assert exc_info.value.product_id == brick.pk

    def test_goods_without_lot_rejected(self, invoice, brick):
        with pytest.raises(InvalidLineError) as exc_info:
            line_manager.validate_requests(invoice, [line(brick, 10, (None, 5))])

        assert exc_info.value.field == 'lot_id'

    def test_malformed_lot_id_rejected(self, invoice, brick):
        request = AllocationRequest(brick.pk, Decimal('10'), [LotAllocation('not-a-uuid', 5)])

        with pytest.raises(InvalidLineError) as exc_info:
            line_manager.validate_requests(invoice, [request])

        assert exc_info.value.field == 'lot_id'

    @pytest.mark.parametrize('product_offset', [Decimal('0.5'), 0.5])
    def test_fractional_product_id_rejected(self, invoice, brick, lot_l, product_offset):
        """A product id of 3.5 is not product 3."""
        request = AllocationRequest(
            brick.pk + product_offset, Decimal('10'), [LotAllocation(lot_l.pk, 5)]
        )

        with pytest.raises(InvalidLineError) as exc_info:
            line_manager.validate_requests(invoice, [request])

        assert exc_info.value.field == 'product_id'
        assert exc_info.value.line_index == 0
        assert remaining(lot_l) == 100

    def test_whole_number_product_id_accepted(self, invoice, brick, lot_l):
        request = AllocationRequest(str(brick.pk), Decimal('10'), [LotAllocation(lot_l.pk, 5)])

        validation = line_manager.validate_requests(invoice, [request])

        assert validation.lot_lines[lot_l.pk].product == brick

    def test_unknown_product(self, invoice):
        request = AllocationRequest(987654, Decimal('10'), [])

        with pytest.raises(SaleNotFoundError) as exc_info:
            line_manager.validate_requests(invoice, [request])

        assert exc_info.value.entity == 'product'

    def test_unknown_lot(self, invoice, brick):
        request = AllocationRequest(brick.pk, Decimal('10'), [LotAllocation(uuid.uuid4(), 5)])

        with pytest.raises(SaleNotFoundError) as exc_info:
            line_manager.validate_requests(invoice, [request])

        assert exc_info.value.entity == 'lot'

    def test_lot_of_other_product_rejected(self, invoice, fly_ash_brick, lot_l):
        with pytest.raises(InvalidLineError) as exc_info:
            line_manager.validate_requests(invoice, [line(fly_ash_brick, 10, (lot_l, 5))])

        assert exc_info.value.field == 'lot_id'

    def test_demand_aggregated_across_lines(self, invoice, brick, lot_l):
        """
        GIVEN lot L with 100 remaining
        WHEN two lines ask for 60 each from L
        THEN InsufficientStock is raised for the combined 120
        """
        with pytest.raises(InsufficientStockError) as exc_info:
            line_manager.validate_requests(
                invoice, [line(brick, 10, (lot_l, 60)), line(brick, 12, (lot_l, 60))]
            )

        assert exc_info.value.requested == 120
        assert exc_info.value.available == 100

    def test_same_lot_on_two_lines_rejected(self, invoice, brick, lot_l):
        with pytest.raises(InvalidLineError) as exc_info:
            line_manager.validate_requests(
                invoice, [line(brick, 10, (lot_l, 20)), line(brick, 12, (lot_l, 20))]
            )

        assert exc_info.value.field == 'allocations'
        assert exc_info.value.line_index == 1

    def test_same_service_on_two_lines_rejected(self, invoice, transport):
        with pytest.raises(InvalidLineError) as exc_info:
            line_manager.validate_requests(invoice, [line(transport, 500), line(transport, 700)])

        assert exc_info.value.field == 'product_id'

    def test_repeated_lot_within_one_line_is_summed(self, invoice, brick, lot_l):
        validation = line_manager.validate_requests(
            invoice, [line(brick, 10, (lot_l, 20), (lot_l, 5))]
        )

        assert validation.lot_lines[lot_l.pk].quantity == 25

    def test_validation_writes_nothing(self, invoice, brick, lot_l):
        line_manager.validate_requests(invoice, [line(brick, 10, (lot_l, 20))])

        assert remaining(lot_l) == 100
        assert not SaleLine.objects.filter(invoice=invoice).exists()


# ============================================================================
# set_lines
# ============================================================================

@pytest.mark.django_db
class TestSetLines:
    """Reconciling stored rows and held stock."""

    def test_creates_one_row_per_lot(self, invoice, brick, lot_l, lot_m):
        line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 30), (lot_m, 15))])

        assert rows(invoice) == {
            (lot_l.pk, brick.pk): (30, Decimal('10.00'), Decimal('300.00')),
            (lot_m.pk, brick.pk): (15, Decimal('10.00'), Decimal('150.00')),
        }
        assert remaining(lot_l) == 70
        assert remaining(lot_m) == 25

    def test_resize_moves_only_the_difference(self, invoice, brick, lot_l):
        line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 30))])
        original = SaleLine.objects.get(invoice=invoice)

        line_manager.set_lines(invoice, [line(brick, 11, (lot_l, 50))])

        updated = SaleLine.objects.get(invoice=invoice)
        assert updated.pk == original.pk
        assert (updated.quantity, updated.amount) == (50, Decimal('550.00'))
        assert remaining(lot_l) == 50

    def test_grow_uses_own_holding(self, invoice, brick, lot_l):
        """A line holding 30 of L (70 left) may grow to the full 100."""
        line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 30))])

        line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 100))])

        assert remaining(lot_l) == 0

    def test_swap_lot(self, invoice, brick, lot_l, lot_m):
        line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 30))])

        line_manager.set_lines(invoice, [line(brick, 10, (lot_m, 30))])

        assert remaining(lot_l) == 100
        assert remaining(lot_m) == 10
        assert list(SaleLine.objects.filter(invoice=invoice).values_list('lot_id', flat=True)) == [lot_m.pk]

    def test_zero_quantity_removes_lot(self, invoice, brick, lot_l, lot_m):
        line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 30), (lot_m, 10))])

        line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 30), (lot_m, 0))])

        assert remaining(lot_m) == 40
        assert SaleLine.objects.filter(invoice=invoice).count() == 1

    def test_omitted_product_is_released(self, invoice, brick, lot_l, fly_ash_brick, fly_ash_lot):
        line_manager.set_lines(invoice, [
            line(brick, 10, (lot_l, 30)),
            line(fly_ash_brick, 5, (fly_ash_lot, 200)),
        ])

        line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 30))])

        assert remaining(fly_ash_lot) == 500
        assert remaining(lot_l) == 70
        assert SaleLine.objects.filter(invoice=invoice).count() == 1

    def test_failure_leaves_rows_and_stock(self, invoice, brick, lot_l):
        line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 30))])

        with pytest.raises(InsufficientStockError):
            line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 200))])

        assert remaining(lot_l) == 70
        assert SaleLine.objects.get(invoice=invoice).quantity == 30


@pytest.mark.django_db
class TestServiceLines:
    """Service products have no lots and never touch stock."""

    def test_quantity_defaults_to_one(self, invoice, transport):
        line_manager.set_lines(invoice, [line(transport, 1500)])

        row = SaleLine.objects.get(invoice=invoice)
        assert row.lot_id is None
        assert row.quantity == 1
        assert row.amount == Decimal('1500.00')

    def test_quantity_is_sum_and_lot_ids_ignored(self, invoice, transport, lot_l):
        line_manager.set_lines(invoice, [line(transport, 100, (lot_l, 2), (None, 3))])

        row = SaleLine.objects.get(invoice=invoice)
        assert row.quantity == 5
        assert row.lot_id is None
        assert remaining(lot_l) == 100

    def test_malformed_lot_id_ignored_for_service(self, invoice, transport):
        """
        GIVEN a service line whose allocation carries a lot id that is not a UUID
        WHEN the lines are set
        THEN the lot id is ignored and the quantity is kept
        """
        request = AllocationRequest(transport.pk, Decimal('400'), [LotAllocation('not-a-uuid', 2)])

        line_manager.set_lines(invoice, [request])

        row = SaleLine.objects.get(invoice=invoice)
        assert row.lot_id is None
        assert row.quantity == 2
        assert row.amount == Decimal('800.00')

    def test_service_row_updated_in_place(self, invoice, transport):
        line_manager.set_lines(invoice, [line(transport, 100)])
        original = SaleLine.objects.get(invoice=invoice)

        line_manager.set_lines(invoice, [line(transport, 250, (None, 2))])

        row = SaleLine.objects.get(invoice=invoice)
        assert row.pk == original.pk
        assert row.amount == Decimal('500.00')


@pytest.mark.django_db
class TestAddAndDeleteLines:
    """Appending lines and clearing them."""

    def test_add_lines_keeps_existing(self, invoice, brick, lot_l, lot_m, transport):
        line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 30))])

        line_manager.add_lines(invoice, [line(brick, 12, (lot_m, 5)), line(transport, 300)])

        assert remaining(lot_l) == 70
        assert remaining(lot_m) == 35
        assert SaleLine.objects.filter(invoice=invoice).count() == 3
        assert SaleLine.objects.get(invoice=invoice, lot=lot_l).rate == Decimal('10.00')

    def test_add_lines_rejects_held_lot(self, invoice, brick, lot_l):
        line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 30))])

        with pytest.raises(InvalidLineError) as exc_info:
            line_manager.add_lines(invoice, [line(brick, 10, (lot_l, 5))])

        assert exc_info.value.field == 'lot_id'
        assert remaining(lot_l) == 70

    def test_add_lines_rejects_held_service(self, invoice, transport):
        line_manager.set_lines(invoice, [line(transport, 100)])

        with pytest.raises(InvalidLineError):
            line_manager.add_lines(invoice, [line(transport, 100)])

    def test_add_lines_checks_stock(self, invoice, brick, lot_l, lot_m):
        line_manager.set_lines(invoice, [line(brick, 10, (lot_l, 30))])

        with pytest.raises(InsufficientStockError):
            line_manager.add_lines(invoice, [line(brick, 10, (lot_m, 41))])

    def test_delete_all_lines_returns_stock(self, invoice, brick, lot_l, lot_m, transport):
        line_manager.set_lines(invoice, [
            line(brick, 10, (lot_l, 30), (lot_m, 40)),
            line(transport, 100),
        ])

        deleted = line_manager.delete_all_lines(invoice)

        assert deleted == 3
        assert remaining(lot_l) == 100
        assert remaining(lot_m) == 40
        assert not SaleLine.objects.filter(invoice=invoice).exists()

    def test_delete_all_lines_on_empty_invoice(self, invoice):
        assert line_manager.delete_all_lines(invoice) == 0
