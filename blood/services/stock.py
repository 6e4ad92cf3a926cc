"""Blood stock inventory for PMI institutions."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from blood.constants import BLOOD_TYPES

from .api import ApiClient, MutationResult

logger = logging.getLogger(__name__)

CHANGE_ADD = 'add'
CHANGE_REDUCE = 'reduce'


class StockAdjustmentError(ValueError):
    """Raised before calling the API when an adjustment can never succeed."""


def complete_stocks(raw_stock: Optional[Iterable[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """One row per blood type, in display order; types the server omits read 0."""

    totals = {blood_type: 0 for blood_type in BLOOD_TYPES}
    expiry: Dict[str, Optional[str]] = {blood_type: None for blood_type in BLOOD_TYPES}
    for entry in raw_stock or ():
        blood_type = entry.get('blood_type')
        if blood_type not in totals:
            continue
        try:
            totals[blood_type] += int(entry.get('quantity') or 0)
        except (TypeError, ValueError):
            logger.debug('Ignoring malformed stock entry %r', entry)
            continue
        entry_expiry = entry.get('expiry_date')
        if entry_expiry and (expiry[blood_type] is None or entry_expiry < expiry[blood_type]):
            expiry[blood_type] = entry_expiry
    return [
        {'blood_type': blood_type, 'quantity': totals[blood_type], 'expiry_date': expiry[blood_type], 'level': stock_level(totals[blood_type])}
        for blood_type in BLOOD_TYPES
    ]


def stock_level(quantity: int) -> str:
    if quantity <= 0:
        return 'empty'
    if quantity < 10:
        return 'low'
    if quantity < 20:
        return 'medium'
    return 'healthy'


def validate_adjustment(current: int, change_type: str, amount: Any) -> int:
    try:
        amount = int(amount)
    except (TypeError, ValueError):
        raise StockAdjustmentError('Enter a whole number of units.')
    if amount <= 0:
        raise StockAdjustmentError('Amount must be greater than 0.')
    if change_type not in (CHANGE_ADD, CHANGE_REDUCE):
        raise StockAdjustmentError(f'Unknown change type: {change_type}.')
    if change_type == CHANGE_REDUCE and amount > current:
        raise StockAdjustmentError(f'Cannot reduce more than the current stock ({current} units).')
    return amount


def fetch_stock(client: ApiClient, institution_id: str) -> List[Dict[str, Any]]:
    data = client.get_data(f'/partners/{institution_id}', fallback_message='Failed to load blood stock.')
    raw = data.get('blood_stock') if isinstance(data, dict) else None
    return complete_stocks(raw)


def fetch_inventory(client: ApiClient, institution_id: str) -> List[Dict[str, Any]]:
    """Batch-level rows from ``/blood-stock/{id}`` used by the dashboard."""

    return client.get_list(f'/blood-stock/{institution_id}', fallback_message='Failed to load stock batches.')


def adjust_stock(
    client: ApiClient,
    institution_id: str,
    *,
    blood_type: str,
    change_type: str,
    quantity: Any,
    current: int,
    notes: str = '',
) -> MutationResult:
    amount = validate_adjustment(current, change_type, quantity)
    payload = {
        'institution_id': institution_id,
        'blood_type': blood_type,
        'change_type': change_type,
        'quantity_change': amount,
    }
    if notes:
        payload['notes'] = notes
    return client.mutate('POST', '/blood-stock/adjust', payload, fallback_message='Failed to adjust stock.')


def stock_history(client: ApiClient, pmi_id: str, *, action_type=None, blood_type=None, start_date=None, end_date=None) -> List[Dict[str, Any]]:
    params = {
        'pmiId': pmi_id,
        'actionType': action_type,
        'bloodType': blood_type,
        'startDate': start_date.isoformat() if hasattr(start_date, 'isoformat') else start_date,
        'endDate': end_date.isoformat() if hasattr(end_date, 'isoformat') else end_date,
    }
    return client.get_list('/blood-stock-history', params=params, fallback_message='Failed to load stock history.')


def stock_history_stats(client: ApiClient, pmi_id: str) -> Dict[str, Any]:
    data = client.get_data('/blood-stock-history/stats', params={'pmiId': pmi_id}, fallback_message='Failed to load stock statistics.')
    data = data if isinstance(data, dict) else {}
    return {
        'total_added': int(data.get('totalAdded') or 0),
        'total_used': int(data.get('totalUsed') or 0),
        'total_expired': int(data.get('totalExpired') or 0),
        'by_blood_type': data.get('byBloodType') or {},
    }
