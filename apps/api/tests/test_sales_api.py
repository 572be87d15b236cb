"""
Sales API tests.

Exercises the HTTP surface end to end: request shapes, status codes,
error bodies and the stock effects behind each endpoint.
"""
import uuid
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import DatabaseError
from rest_framework import status

from apps.sales.models import Invoice, PaymentStatusChoices

from tests.helpers import remaining

INVOICES_URL = '/api/sales/invoices/'


def detail_url(invoice_id):
    return f'{INVOICES_URL}{invoice_id}/'


def lines_url(invoice_id):
    return f'{INVOICES_URL}{invoice_id}/lines/'


def line_data(product, rate, *allocations):
    return {
        'product_id': product.pk,
        'rate': str(rate),
        'allocations': [
            {'lot_id': str(lot.pk) if lot is not None else None, 'quantity': quantity}
            for lot, quantity in allocations
        ],
    }


@pytest.fixture
def sale_data(client_partner):
    def _data(*lines, **overrides):
        data = {
            'invoice_number': 'INV-2025-001',
            'partner_id': client_partner.pk,
            'invoice_date': '2025-01-15',
            'lines': list(lines),
        }
        data.update(overrides)
        return data
    return _data


@pytest.fixture
def created(auth_client, sale_data, brick, lot_l):
    """A sale holding 30 of lot L at rate 10, created through the API."""
    response = auth_client.post(INVOICES_URL, sale_data(line_data(brick, 10, (lot_l, 30))), format='json')
    assert response.status_code == status.HTTP_201_CREATED
    return response.data


@pytest.mark.django_db
class TestAuthentication:

    def test_sales_require_authentication(self, api_client):
        response = api_client.get(INVOICES_URL)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_stock_requires_authentication(self, api_client):
        response = api_client.get('/api/stock/lots/')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_token_obtain(self, api_client, user):
        response = api_client.post(
            '/api/token/', {'username': 'clerk', 'password': 'testpass123'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert 'access' in response.data
        assert 'refresh' in response.data

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        assert api_client.get(INVOICES_URL).status_code == status.HTTP_200_OK


@pytest.mark.django_db
class TestCreateSale:

    def test_create_returns_detail(self, created, lot_l, client_partner):
        assert created['invoice_number'] == 'INV-2025-001'
        assert created['partner'] == client_partner.pk
        assert created['partner_name'] == 'Sharma Constructions'
        assert created['subtotal'] == '300.00'
        assert created['cgst_amount'] == '27.00'
        assert created['total_amount'] == '354.00'
        assert created['pending_amount'] == '354.00'
        assert len(created['lines']) == 1

        sale_line = created['lines'][0]
        assert sale_line['lot_id'] == str(lot_l.pk)
        assert sale_line['batch_number'] == 'L'
        assert sale_line['location_name'] == 'Kiln Yard'
        assert sale_line['product']['name'] == 'Red Brick'
        assert sale_line['quantity'] == 30
        assert sale_line['amount'] == '300.00'
        assert remaining(lot_l) == 70

    def test_create_with_service_line(self, auth_client, sale_data, transport):
        response = auth_client.post(
            INVOICES_URL, sale_data(line_data(transport, 1500)), format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        sale_line = response.data['lines'][0]
        assert sale_line['lot_id'] is None
        assert sale_line['batch_number'] is None
        assert sale_line['quantity'] == 1

    def test_insufficient_stock(self, auth_client, sale_data, brick, lot_l):
        response = auth_client.post(
            INVOICES_URL,
            sale_data(line_data(brick, 10, (lot_l, 60)), line_data(brick, 11, (lot_l, 60))),
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_type'] == 'insufficient_stock'
        assert response.data['lot_id'] == str(lot_l.pk)
        assert response.data['available'] == 100
        assert response.data['requested'] == 120
        assert 'Insufficient stock' in response.data['error']
        assert remaining(lot_l) == 100
        assert not Invoice.objects.exists()

    def test_duplicate_invoice_number(self, auth_client, created, sale_data):
        response = auth_client.post(INVOICES_URL, sale_data(), format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_type'] == 'duplicate_invoice_number'
        assert response.data['invoice_number'] == 'INV-2025-001'
        assert response.data['error'] == 'Invoice number INV-2025-001 already exists'

    def test_invalid_line(self, auth_client, sale_data, brick, lot_l):
        response = auth_client.post(
            INVOICES_URL, sale_data(line_data(brick, 0, (lot_l, 5))), format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_type'] == 'invalid_line'
        assert response.data['field'] == 'rate'
        assert response.data['line_index'] == 0
        assert response.data['product_id'] == str(brick.pk)

    def test_unknown_lot(self, auth_client, sale_data, brick):
        data = sale_data({
            'product_id': brick.pk,
            'rate': '10.00',
            'allocations': [{'lot_id': str(uuid.uuid4()), 'quantity': 5}],
        })

        response = auth_client.post(INVOICES_URL, data, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error_type'] == 'not_found'
        assert response.data['entity'] == 'lot'

    def test_malformed_request(self, auth_client, sale_data, brick, lot_l):
        data = sale_data({'product_id': brick.pk, 'allocations': [{'lot_id': str(lot_l.pk), 'quantity': -3}]})

        response = auth_client.post(INVOICES_URL, data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'lines' in response.data

    def test_storage_failure(self, auth_client, sale_data, brick, lot_l):
        with patch(
            'apps.sales.services.recompute_invoice_totals',
            side_effect=DatabaseError('could not serialize access'),
        ):
            response = auth_client.post(
                INVOICES_URL, sale_data(line_data(brick, 10, (lot_l, 30))), format='json'
            )

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.data['error_type'] == 'storage_failure'
        assert response.data['operation'] == 'create'
        assert remaining(lot_l) == 100


@pytest.mark.django_db
class TestReadSales:

    def test_list(self, auth_client, created):
        response = auth_client.get(INVOICES_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['invoice_number'] == 'INV-2025-001'
        assert 'lines' not in response.data['results'][0]

    def test_list_filters(self, auth_client, created, other_partner):
        assert auth_client.get(INVOICES_URL, {'partner': other_partner.pk}).data['count'] == 0
        assert auth_client.get(INVOICES_URL, {'payment_status': 'pending'}).data['count'] == 1
        assert auth_client.get(INVOICES_URL, {'payment_status': 'complete'}).data['count'] == 0

    def test_detail(self, auth_client, created):
        response = auth_client.get(detail_url(created['id']))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['partner_gst_number'] == '27AAAPL1234C1ZV'
        assert response.data['lines'][0]['quantity'] == 30

    @pytest.mark.parametrize('invoice_id', ['not-a-uuid', uuid.uuid4()])
    def test_detail_not_found(self, auth_client, invoice_id):
        response = auth_client.get(detail_url(invoice_id))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error_type'] == 'not_found'
        assert response.data['entity'] == 'invoice'


@pytest.mark.django_db
class TestUpdateSale:

    def test_patch_fields_only(self, auth_client, created, lot_l):
        response = auth_client.patch(
            detail_url(created['id']),
            {'remarks': 'Unload at gate 2', 'payment_status': PaymentStatusChoices.COMPLETE},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['remarks'] == 'Unload at gate 2'
        assert response.data['paid_amount'] == '354.00'
        assert response.data['pending_amount'] == '0.00'
        assert len(response.data['lines']) == 1
        assert remaining(lot_l) == 70

    def test_patch_lines_moves_net_difference(self, auth_client, created, brick, lot_l):
        response = auth_client.patch(
            detail_url(created['id']),
            {'lines': [line_data(brick, 10, (lot_l, 50))]},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['subtotal'] == '500.00'
        assert response.data['lines'][0]['id'] == created['lines'][0]['id']
        assert remaining(lot_l) == 50

    def test_patch_overdraw_rejected(self, auth_client, created, brick, lot_l):
        response = auth_client.patch(
            detail_url(created['id']),
            {'lines': [line_data(brick, 10, (lot_l, 200))]},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_type'] == 'insufficient_stock'
        assert remaining(lot_l) == 70
        assert auth_client.get(detail_url(created['id'])).data['subtotal'] == '300.00'

    def test_patch_duplicate_number(self, auth_client, created, sale_data):
        auth_client.post(INVOICES_URL, sale_data(invoice_number='INV-2025-002'), format='json')

        response = auth_client.patch(
            detail_url(created['id']), {'invoice_number': 'INV-2025-002'}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_type'] == 'duplicate_invoice_number'


@pytest.mark.django_db
class TestLineEndpoints:

    def test_replace_lines(self, auth_client, created, brick, lot_l, lot_m):
        response = auth_client.put(
            lines_url(created['id']),
            {'lines': [line_data(brick, 12, (lot_m, 40))]},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['subtotal'] == '480.00'
        assert remaining(lot_l) == 100
        assert remaining(lot_m) == 0

    def test_add_lines(self, auth_client, created, transport):
        response = auth_client.post(
            lines_url(created['id']), {'lines': [line_data(transport, 200)]}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['lines']) == 2
        assert response.data['subtotal'] == '500.00'

    def test_add_held_lot_rejected(self, auth_client, created, brick, lot_l):
        response = auth_client.post(
            lines_url(created['id']), {'lines': [line_data(brick, 10, (lot_l, 5))]}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_type'] == 'invalid_line'
        assert remaining(lot_l) == 70

    def test_clear_lines(self, auth_client, created, lot_l):
        response = auth_client.delete(lines_url(created['id']))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['lines'] == []
        assert response.data['total_amount'] == '0.00'
        assert remaining(lot_l) == 100

    def test_lines_body_required(self, auth_client, created):
        response = auth_client.put(lines_url(created['id']), {}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestDeleteSale:

    def test_delete_returns_stock(self, auth_client, created, lot_l):
        response = auth_client.delete(detail_url(created['id']))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert remaining(lot_l) == 100

    def test_delete_twice(self, auth_client, created, lot_l):
        auth_client.delete(detail_url(created['id']))

        response = auth_client.delete(detail_url(created['id']))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert remaining(lot_l) == 100


@pytest.mark.django_db
class TestCheckNumber:
    CHECK_URL = f'{INVOICES_URL}check-number/'

    def test_taken(self, auth_client, created):
        response = auth_client.get(self.CHECK_URL, {'invoice_number': 'INV-2025-001'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {
            'exists': True,
            'message': 'Invoice number INV-2025-001 already exists',
        }

    def test_own_number_excluded(self, auth_client, created):
        response = auth_client.get(
            self.CHECK_URL, {'invoice_number': 'INV-2025-001', 'exclude_id': created['id']}
        )

        assert response.data['exists'] is False

    def test_free(self, auth_client):
        response = auth_client.get(self.CHECK_URL, {'invoice_number': 'INV-2025-777'})

        assert response.data['exists'] is False
        assert response.data['message'] == 'Invoice number INV-2025-777 is available'

    def test_missing_number(self, auth_client):
        response = auth_client.get(self.CHECK_URL)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_bad_exclude_id(self, auth_client):
        response = auth_client.get(
            self.CHECK_URL, {'invoice_number': 'INV-1', 'exclude_id': 'nope'}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestStockLotsApi:

    def test_list_lots_for_product(self, auth_client, brick, lot_l, lot_m, fly_ash_lot):
        response = auth_client.get('/api/stock/lots/', {'product': brick.pk})

        assert response.status_code == status.HTTP_200_OK
        assert {lot['batch_number'] for lot in response.data['results']} == {'L', 'M'}

    def test_available_lots_only(self, auth_client, created, brick, lot_l, lot_m):
        auth_client.put(
            lines_url(created['id']), {'lines': [line_data(brick, 10, (lot_m, 40))]}, format='json'
        )

        response = auth_client.get('/api/stock/lots/', {'product': brick.pk, 'available': 'true'})

        results = response.data['results']
        assert [lot['batch_number'] for lot in results] == ['L']
        assert results[0]['remaining_quantity'] == 100
        assert results[0]['location']['code'] == 'KILN-YARD'

    def test_lot_detail_shows_allocation(self, auth_client, created, lot_l):
        response = auth_client.get(f'/api/stock/lots/{lot_l.pk}/')

        assert response.data['remaining_quantity'] == 70
        assert response.data['allocated_quantity'] == 30
        assert response.data['product_name'] == 'Red Brick'

    def test_non_numeric_product_filter(self, auth_client, lot_l):
        response = auth_client.get('/api/stock/lots/', {'product': 'bricks'})

        assert response.data['count'] == 0
