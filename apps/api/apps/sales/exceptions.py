"""
Errors raised by the sale ledger.

Rule violations are ValidationError subclasses carrying a ``code`` and
``params`` describing the offending entity. Missing entities are
ObjectDoesNotExist subclasses. Views turn both into error responses.
"""
from django.core.exceptions import ObjectDoesNotExist, ValidationError

from apps.stock.services import InsufficientStockError

__all__ = [
    'DuplicateInvoiceNumberError',
    'InsufficientStockError',
    'InvalidLineError',
    'SaleNotFoundError',
    'StorageFailureError',
]


class DuplicateInvoiceNumberError(ValidationError):
    """Invoice number already used by a different invoice."""

    def __init__(self, invoice_number):
        super().__init__(
            'Invoice number %(invoice_number)s already exists',
            code='duplicate_invoice_number',
            params={'invoice_number': invoice_number},
        )
        self.invoice_number = invoice_number


class InvalidLineError(ValidationError):
    """A requested line breaks a line rule (rate, quantity, lot)."""

    def __init__(self, message, product_id=None, line_index=None, field=None):
        super().__init__(
            message,
            code='invalid_line',
            params={
                'product_id': None if product_id is None else str(product_id),
                'line_index': line_index,
                'field': field,
            },
        )
        self.product_id = product_id
        self.line_index = line_index
        self.field = field


class SaleNotFoundError(ObjectDoesNotExist):
    """Invoice, lot, product or partner does not exist."""
    code = 'not_found'

    def __init__(self, entity, entity_id):
        super().__init__(f'{entity.capitalize()} {entity_id} not found')
        self.entity = entity
        self.entity_id = entity_id

    @property
    def params(self):
        return {'entity': self.entity, 'entity_id': str(self.entity_id)}


class StorageFailureError(Exception):
    """The unit of work could not be committed; nothing was applied."""
    code = 'storage_failure'

    def __init__(self, operation, cause=None):
        super().__init__(f'Storage failure during sale {operation}')
        self.operation = operation
        self.cause = cause

    @property
    def params(self):
        return {'operation': self.operation}
