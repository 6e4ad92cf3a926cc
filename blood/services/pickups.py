from __future__ import annotations

from typing import Any, Dict, List

from blood.constants import PICKUP_CODE_LENGTH

from .api import ApiClient, MutationResult


def normalize_pickup_code(code: str) -> str:
    """Pickup confirmation codes are 8 characters, compared upper-case."""

    normalized = (code or '').strip().upper()
    if len(normalized) != PICKUP_CODE_LENGTH:
        raise ValueError(f'Pickup code must be exactly {PICKUP_CODE_LENGTH} characters.')
    return normalized


def list_pickups(client: ApiClient, institution_id: str, status: str = 'all') -> List[Dict[str, Any]]:
    rows = client.get_list(f'/pickup/{institution_id}', fallback_message='Failed to load pickup schedules.')
    if status and status != 'all':
        rows = [row for row in rows if row.get('status') == status]
    return rows


def complete_pickup(client: ApiClient, pickup_id: str, code: str) -> MutationResult:
    return client.mutate(
        'PATCH',
        f'/pickup/{pickup_id}/complete',
        {'unique_code': normalize_pickup_code(code)},
        fallback_message='Failed to complete pickup.',
    )
