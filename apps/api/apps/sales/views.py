"""Sales views."""
from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.exceptions import ObjectDoesNotExist, ValidationError

from apps.core.observability import get_sanitized_logger

from . import services
from .exceptions import SaleNotFoundError, StorageFailureError
from .models import Invoice
from .serializers import (
    InvoiceDetailSerializer,
    InvoiceListSerializer,
    SaleCreateSerializer,
    SaleLinesSerializer,
    SaleUpdateSerializer,
)

logger = get_sanitized_logger(__name__)


def domain_error_response(exc):
    """
    Build the error response for a sale ledger exception, or None when
    ``exc`` is not one.

    Body: {"error": <message>, "error_type": <code>, ...entity fields}
    """
    if isinstance(exc, StorageFailureError):
        http_status = status.HTTP_503_SERVICE_UNAVAILABLE
        message = str(exc)
        error_type, params = exc.code, exc.params
    elif isinstance(exc, SaleNotFoundError):
        http_status = status.HTTP_404_NOT_FOUND
        message = str(exc)
        error_type, params = exc.code, exc.params
    elif isinstance(exc, ObjectDoesNotExist):
        http_status = status.HTTP_404_NOT_FOUND
        message = str(exc)
        error_type, params = 'not_found', {}
    elif isinstance(exc, ValidationError) and getattr(exc, 'code', None):
        http_status = status.HTTP_400_BAD_REQUEST
        message = exc.messages[0]
        error_type, params = exc.code, exc.params or {}
    else:
        return None

    logger.warning(
        f'Sale request failed - {error_type}',
        extra={'error_type': error_type, 'error': message}
    )
    return Response({'error': message, 'error_type': error_type, **params}, status=http_status)


class SaleViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    ViewSet for invoices. Writes go through apps.sales.services.

    Endpoints:
    - POST   /api/sales/invoices/                   create sale
    - GET    /api/sales/invoices/                   list
    - GET    /api/sales/invoices/{id}/              detail with lines
    - PATCH  /api/sales/invoices/{id}/              update fields and/or lines
    - DELETE /api/sales/invoices/{id}/              delete sale, return stock
    - PUT    /api/sales/invoices/{id}/lines/        replace all lines
    - POST   /api/sales/invoices/{id}/lines/        add lines
    - DELETE /api/sales/invoices/{id}/lines/        clear lines
    - GET    /api/sales/invoices/check-number/      invoice number availability
    """
    queryset = Invoice.objects.select_related('partner').all()
    serializer_class = InvoiceListSerializer
    permission_classes = [IsAuthenticated]
    search_fields = ['invoice_number', 'partner__name']
    ordering_fields = ['invoice_date', 'created_at', 'total_amount']
    ordering = ['-invoice_date', '-created_at']

    def get_queryset(self):
        queryset = super().get_queryset()
        partner = self.request.query_params.get('partner')
        if partner:
            queryset = queryset.filter(partner_id=partner)
        payment_status = self.request.query_params.get('payment_status')
        if payment_status:
            queryset = queryset.filter(payment_status=payment_status)
        return queryset

    def handle_exception(self, exc):
        response = domain_error_response(exc)
        if response is not None:
            return response
        return super().handle_exception(exc)

    def _detail(self, invoice_id, http_status=status.HTTP_200_OK):
        invoice = services.get_sale(invoice_id)
        return Response(InvoiceDetailSerializer(invoice).data, status=http_status)

    def create(self, request):
        serializer = SaleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invoice = services.create_sale(serializer.to_payload())
        return self._detail(invoice.pk, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return self._detail(pk)

    def partial_update(self, request, pk=None):
        serializer = SaleUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        services.update_sale(pk, serializer.to_patch(), lines=serializer.to_lines())
        return self._detail(pk)

    def destroy(self, request, pk=None):
        services.delete_sale(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['put', 'post', 'delete'], url_path='lines')
    def lines(self, request, pk=None):
        """
        Line-set operations on one invoice.

        PUT  {"lines": [...]}  replace every line (edit dialog)
        POST {"lines": [...]}  add lines; lots already on the invoice are rejected
        DELETE                 remove every line, keep the invoice
        """
        if request.method == 'DELETE':
            services.clear_sale_lines(pk)
            return self._detail(pk)

        serializer = SaleLinesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        if request.method == 'PUT':
            services.replace_sale_lines(pk, serializer.to_lines())
        else:
            services.add_sale_lines(pk, serializer.to_lines())
        return self._detail(pk)

    @action(detail=False, methods=['get'], url_path='check-number')
    def check_number(self, request):
        """
        GET /api/sales/invoices/check-number/?invoice_number=INV-1&exclude_id=<uuid>

        Returns {"exists": bool, "message": str}
        """
        invoice_number = request.query_params.get('invoice_number', '').strip()
        if not invoice_number:
            return Response(
                {'error': 'invoice_number is required', 'error_type': 'invalid_request'},
                status=status.HTTP_400_BAD_REQUEST
            )
        exclude_id = request.query_params.get('exclude_id') or None
        try:
            exists = services.invoice_number_exists(invoice_number, exclude_id=exclude_id)
        except ValidationError:
            return Response(
                {'error': 'exclude_id is not a valid invoice id', 'error_type': 'invalid_request'},
                status=status.HTTP_400_BAD_REQUEST
            )
        message = (
            f'Invoice number {invoice_number} already exists'
            if exists else f'Invoice number {invoice_number} is available'
        )
        return Response({'exists': exists, 'message': message})
