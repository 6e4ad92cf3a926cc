"""Blood request, partner and allocation calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from blood.constants import INSTITUTION_PMI
from blood.utils.formatters import to_datetime

from .allocation import AllocationBatch, AllocationSnapshot, AllocationSummary, PickupPlan, classify_request
from .api import ApiClient, ApiError, MutationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Partner:
    """A PMI institution a hospital can send requests to."""

    id: str
    name: str
    address: str = ''
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    blood_stock: tuple = ()

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> 'Partner':
        return cls(
            id=str(raw.get('id')),
            name=raw.get('institution_name') or raw.get('name') or '',
            address=raw.get('address') or '',
            latitude=raw.get('latitude'),
            longitude=raw.get('longitude'),
            blood_stock=tuple(raw.get('blood_stock') or ()),
        )


def list_partners(client: ApiClient) -> List[Partner]:
    rows = client.get_list('/partners', fallback_message='Failed to load partner blood banks.')
    return [Partner.from_api(row) for row in rows if row.get('institution_type') == INSTITUTION_PMI]


def list_requests(client: ApiClient, institution) -> List[Dict[str, Any]]:
    """Requests sent by a hospital, or addressed to a PMI."""

    if institution.is_pmi:
        path = f'/bloodReq/partner/{institution.id}'
    else:
        path = f'/bloodReq/{institution.id}'
    return client.get_list(path, fallback_message='Failed to load blood requests.')


def filter_requests(
    rows: Sequence[Dict[str, Any]],
    *,
    blood_type: Optional[str] = None,
    location: Optional[str] = None,
    on_date: Optional[date] = None,
    status: Optional[str] = None,
) -> List[Dict[str, Any]]:
    result = []
    location = (location or '').strip().lower()
    for row in rows:
        if blood_type and row.get('blood_type') != blood_type:
            continue
        if status and row.get('status') != status:
            continue
        if location:
            partner_name = ((row.get('partners') or {}).get('name') or '').lower()
            if location not in partner_name:
                continue
        if on_date:
            created = to_datetime(row.get('created_at'))
            if created is None or created.date() != on_date:
                continue
        result.append(row)
    return result


def create_request(client: ApiClient, requester_id: str, cleaned: Dict[str, Any]) -> MutationResult:
    payload = {key: value for key, value in cleaned.items() if value not in (None, '')}
    payload['quantity'] = int(cleaned['quantity'])
    payload['requester_id'] = requester_id
    return client.mutate('POST', '/bloodReq/create', payload, fallback_message='Failed to create blood request.')


def approve_request(client: ApiClient, request_id: str) -> MutationResult:
    return client.mutate('PATCH', f'/partners/approve/{request_id}', fallback_message='Failed to approve the request.')


def reject_request(client: ApiClient, request_id: str, reason: str) -> MutationResult:
    reason = (reason or '').strip()
    if not reason:
        raise ValueError('A rejection reason is required.')
    return client.mutate(
        'PATCH',
        f'/partners/reject/{request_id}',
        {'rejection_reason': reason},
        fallback_message='Failed to reject the request.',
    )


def fetch_allocation_snapshot(client: ApiClient, request_id: str) -> AllocationSnapshot:
    data = client.get_data(
        f'/allocation/request/{request_id}/with-free-stock',
        fallback_message='Failed to load allocation data.',
    )
    return AllocationSnapshot.from_api(data if isinstance(data, dict) else None)


def fetch_available_allocations(client: ApiClient, request_id: str) -> AllocationSnapshot:
    data = client.get_data(
        f'/allocation/request/{request_id}/available',
        fallback_message='Failed to load available allocations.',
    )
    data = data if isinstance(data, dict) else {}
    return AllocationSnapshot(
        allocations=tuple(AllocationBatch.from_api(item) for item in data.get('allocations') or []),
        summary=AllocationSummary.from_api(data.get('summary')),
    )


def allocation_history(client: ApiClient, request_id: str) -> List[Dict[str, Any]]:
    return client.get_list(f'/allocation/request/{request_id}/history', fallback_message='Failed to load allocation history.')


def pending_pickups(client: ApiClient, request_id: str) -> List[Dict[str, Any]]:
    return client.get_list(f'/allocation/request/{request_id}/pending', fallback_message='Failed to load pending pickups.')


def confirm_allocation_pickup(client: ApiClient, allocation_id: str, quantity: int) -> MutationResult:
    if int(quantity) < 1:
        raise ValueError('Pickup quantity must be at least 1.')
    return client.mutate(
        'POST',
        f'/allocation/{allocation_id}/pickup',
        {'quantity_picked_up': int(quantity)},
        fallback_message='Failed to confirm pickup.',
    )


def cancel_allocation(client: ApiClient, allocation_id: str, reason: str) -> MutationResult:
    return client.mutate(
        'POST',
        f'/allocation/{allocation_id}/cancel',
        {'reason': (reason or '').strip()},
        fallback_message='Failed to cancel allocation.',
    )


def confirm_pickup(client: ApiClient, request_id: str, plan: PickupPlan, pickup_date, pickup_time, notes: str = '') -> MutationResult:
    if not plan.can_submit(pickup_date, pickup_time):
        raise ValueError('Pick a date and time and select enough units to cover the request.')
    return client.mutate(
        'POST',
        f'/allocation/request/{request_id}/confirm-with-free-stock',
        plan.to_payload(pickup_date, pickup_time, notes),
        fallback_message='Failed to create pickup.',
    )


def annotate_readiness(client: ApiClient, rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Attach ``readiness`` (pickup_ready / campaign_needed) to approved rows.

    A failed lookup leaves ``readiness`` as ``None`` so the row offers no action
    rather than a wrong one.
    """

    annotated = []
    for row in rows:
        row = dict(row)
        row['readiness'] = None
        if row.get('status') == 'approved':
            try:
                snapshot = fetch_allocation_snapshot(client, row['id'])
            except ApiError as exc:
                logger.warning('Allocation lookup failed for request %s: %s', row.get('id'), exc.message)
            else:
                row['readiness'] = classify_request(row.get('quantity') or 0, snapshot.summary)
                row['total_available'] = snapshot.summary.total_available
        annotated.append(row)
    return annotated
