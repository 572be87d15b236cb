"""
Global test fixtures for pytest.

Provides reusable fixtures for ledger and API testing:
- Authenticated API client
- Partners, product types, storage location and production lots
- Small helpers to build allocation requests
"""
import pytest
from datetime import date
from decimal import Decimal
from rest_framework.test import APIClient
from django.contrib.auth import get_user_model

from apps.core.observability.correlation import clear_request_context
from apps.partners.models import Partner, PartnerTypeChoices
from apps.products.models import ProductType
from apps.sales.services import SalePayload
from apps.stock.models import StorageLocation, StockLot

User = get_user_model()


@pytest.fixture(autouse=True)
def _clean_request_context():
    yield
    clear_request_context()


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def user(db):
    return User.objects.create_user(
        username='clerk',
        email='clerk@test.com',
        password='testpass123',
    )


@pytest.fixture
def auth_client(user):
    """API client authenticated as a back-office clerk."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# ============================================================================
# Master data
# ============================================================================

@pytest.fixture
def client_partner(db):
    return Partner.objects.create(
        name='Sharma Constructions',
        partner_type=PartnerTypeChoices.CLIENT,
        gst_number='27AAAPL1234C1ZV',
    )


@pytest.fixture
def other_partner(db):
    return Partner.objects.create(name='Patel Builders', partner_type=PartnerTypeChoices.BOTH)


@pytest.fixture
def brick(db):
    """Stocked product using the invoice's GST rates."""
    return ProductType.objects.create(name='Red Brick', hsn_number='6901')


@pytest.fixture
def fly_ash_brick(db):
    """Second stocked product with its own GST rates."""
    return ProductType.objects.create(
        name='Fly Ash Brick',
        hsn_number='6810',
        cgst_rate=Decimal('2.5'),
        sgst_rate=Decimal('2.5'),
        igst_rate=Decimal('0'),
    )


@pytest.fixture
def transport(db):
    """Service product: no lots, no stock."""
    return ProductType.objects.create(name='Transport', hsn_number='9965', is_service=True)


@pytest.fixture
def kiln_yard(db):
    return StorageLocation.objects.create(name='Kiln Yard', code='KILN-YARD')


@pytest.fixture
def make_lot(kiln_yard):
    """Factory for production lots; remaining starts equal to total."""
    def _make_lot(product, total, batch_number=''):
        return StockLot.objects.create(
            product=product,
            location=kiln_yard,
            batch_number=batch_number,
            production_date=date(2025, 1, 10),
            total_quantity=total,
        )
    return _make_lot


@pytest.fixture
def lot_l(brick, make_lot):
    """Lot L: 100 red bricks."""
    return make_lot(brick, 100, 'L')


@pytest.fixture
def lot_m(brick, make_lot):
    """Lot M: 40 red bricks."""
    return make_lot(brick, 40, 'M')


@pytest.fixture
def fly_ash_lot(fly_ash_brick, make_lot):
    return make_lot(fly_ash_brick, 500, 'FA-1')


@pytest.fixture
def sale_payload(client_partner):
    """Factory for SalePayload with sensible defaults."""
    def _payload(*lines, **overrides):
        data = {
            'invoice_number': 'INV-2025-001',
            'partner_id': client_partner.pk,
            'invoice_date': date(2025, 1, 15),
            'is_gst': True,
            'lines': list(lines),
        }
        data.update(overrides)
        return SalePayload(**data)
    return _payload
