"""
Domain events logging helpers.

Provides structured event logging for sale and stock ledger operations.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.
    
    Args:
        event_name: Name of the event (e.g., 'sale.created', 'stock.allocated')
        entity_type: Type of entity (e.g., 'Invoice', 'StockLot')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, blocked...)
        **extra_fields: Additional fields to log (will be sanitized)
    
    Example:
        log_domain_event(
            'sale.created',
            entity_type='Invoice',
            entity_id=str(invoice.id),
            result='success',
            line_count=3,
            total=str(invoice.total)
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }
    
    if entity_type:
        event_data['entity_type'] = entity_type
    
    if entity_id:
        event_data['entity_id'] = entity_id
    
    if entity_ids:
        event_data.update(entity_ids)
    
    event_data.update(sanitize_dict(extra_fields))
    
    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_consistency_checkpoint(
    checkpoint_name: str,
    entity_ids: Dict[str, str],
    checks_passed: Dict[str, bool],
    **extra_fields
):
    """
    Log a consistency checkpoint event.
    
    Used to verify ledger integrity at the end of a unit of work.
    
    Example:
        log_consistency_checkpoint(
            'sale_lines_stock_consistency',
            entity_ids={'invoice_id': str(invoice.id)},
            checks_passed={'no_negative_lots': True, 'totals_match_lines': True},
        )
    """
    all_passed = all(checks_passed.values())
    
    event_data = {
        'event': 'consistency_checkpoint',
        'checkpoint': checkpoint_name,
        'status': 'passed' if all_passed else 'failed',
        'checks': checks_passed,
    }
    event_data.update(entity_ids)
    event_data.update(sanitize_dict(extra_fields))
    
    if all_passed:
        logger.info(f'Checkpoint passed: {checkpoint_name}', extra=event_data)
    else:
        logger.error(f'Checkpoint FAILED: {checkpoint_name}', extra=event_data)


def log_sale_event(event_name, invoice, result='success', **extra):
    """Log a sale lifecycle event (created, updated, deleted, lines_replaced)."""
    log_domain_event(
        event_name,
        entity_type='Invoice',
        entity_id=str(invoice.id),
        entity_ids={'invoice_number': invoice.invoice_number},
        result=result,
        **extra
    )


def log_stock_movement(event_name, lot_id, quantity, remaining=None):
    """Log a lot counter movement (stock.allocated / stock.released)."""
    extra = {'quantity': quantity}
    if remaining is not None:
        extra['remaining_quantity'] = remaining
    
    log_domain_event(
        event_name,
        entity_type='StockLot',
        entity_id=str(lot_id),
        result='success',
        **extra
    )


def log_insufficient_stock(lot_id, requested, available):
    """Log a rejected allocation."""
    log_domain_event(
        'stock.insufficient',
        entity_type='StockLot',
        entity_id=str(lot_id),
        result='blocked',
        requested_qty=requested,
        available_qty=available,
    )
