"""Fulfillment campaign endpoints of the portal API."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from django.conf import settings

from blood.services.api import ApiClient, ApiError, ApiValidationError, MutationResult, Pagination
from blood.utils.timers import RepeatingTimer

from .codes import parse_donor_code
from .progress import FulfillmentProgress, fulfillment_progress
from .records import (
    DonorConfirmation,
    EligibleDonor,
    FulfillmentRequest,
    FulfillmentStats,
    FulfillmentStatus,
    UrgencyLevel,
)

logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


class FulfillmentApi:
    def __init__(self, client: ApiClient):
        self.client = client

    # Campaign lifecycle

    def create(self, data: Dict[str, Any]) -> FulfillmentRequest:
        body = self.client.post('/fulfillment', data, fallback_message='Failed to create fulfillment request')
        payload = (body or {}).get('data') or {}
        return FulfillmentRequest.from_api(payload.get('fulfillment') or payload)

    def search_and_create(
        self,
        *,
        blood_request_id: str,
        pmi_id: str,
        patient_name: str,
        blood_type: str,
        quantity_needed: int,
        urgency_level: str = UrgencyLevel.MEDIUM.value,
        search_radius_km: Optional[int] = None,
        target_donors: Optional[int] = None,
    ) -> str:
        """Open a donor campaign for a request the stock cannot cover; returns the fulfillment id."""

        payload = {
            'blood_request_id': blood_request_id,
            'pmi_id': pmi_id,
            'patient_name': patient_name,
            'blood_type': blood_type,
            'quantity_needed': int(quantity_needed),
            'urgency_level': urgency_level or UrgencyLevel.MEDIUM.value,
            'search_radius_km': search_radius_km or getattr(settings, 'FULFILLMENT_DEFAULT_SEARCH_RADIUS_KM', 20),
            'target_donors': target_donors or getattr(settings, 'FULFILLMENT_DEFAULT_TARGET_DONORS', 50),
        }
        body = self.client.post('/fulfillment/search-and-create', payload, fallback_message='Failed to create donor campaign')
        body = body if isinstance(body, dict) else {}
        if body.get('success') is False:
            raise ApiValidationError(body.get('message') or 'Failed to create donor campaign', payload=body)
        fulfillment_id = body.get('fulfillment_id') or (body.get('data') or {}).get('fulfillment_id')
        if not fulfillment_id:
            raise ApiValidationError('The server did not return a fulfillment id.', payload=body)
        return str(fulfillment_id)

    def initiate(self, fulfillment_id: str) -> MutationResult:
        return self.client.mutate('POST', f'/fulfillment/{fulfillment_id}/initiate', fallback_message='Failed to initiate fulfillment')

    def cancel(self, fulfillment: FulfillmentRequest, reason: str) -> None:
        reason = (reason or '').strip()
        if not reason:
            raise ValueError('A cancellation reason is required.')
        if fulfillment.is_terminal:
            raise ValueError(f'Fulfillment is already {fulfillment.status} and cannot be cancelled.')
        self.client.patch(
            f'/fulfillment/{fulfillment.id}/status',
            {'status': FulfillmentStatus.CANCELLED.value, 'cancellation_reason': reason},
            fallback_message='Failed to cancel fulfillment',
        )

    def update_status(self, fulfillment_id: str, status: str) -> None:
        if status not in FulfillmentStatus.values:
            raise ValueError(f'Unknown fulfillment status: {status}')
        self.client.patch(f'/fulfillment/{fulfillment_id}/status', {'status': status}, fallback_message='Failed to update status')

    def update_notes(self, fulfillment_id: str, notes: str) -> None:
        self.client.patch(f'/fulfillment/{fulfillment_id}/status', {'notes': notes}, fallback_message='Failed to update notes')

    # Reads

    def get_all(
        self,
        *,
        status: Optional[str] = None,
        blood_type: Optional[str] = None,
        pmi_id: Optional[str] = None,
        urgency_level: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[FulfillmentRequest], Optional[Pagination]]:
        params = {
            'status': status,
            'blood_type': blood_type,
            'pmi_id': pmi_id,
            'urgency_level': urgency_level,
            'page': page,
            'limit': limit,
        }
        result = self.client.get_page('/fulfillment', params=params, fallback_message='Failed to fetch fulfillments')
        return [FulfillmentRequest.from_api(item) for item in result.items], result.pagination

    def get_by_id(self, fulfillment_id: str) -> FulfillmentRequest:
        data = self.client.get_data(f'/fulfillment/{fulfillment_id}', fallback_message='Failed to fetch fulfillment')
        return FulfillmentRequest.from_api(data or {})

    def get_progress(self, fulfillment_id: str) -> FulfillmentProgress:
        return fulfillment_progress(self.get_by_id(fulfillment_id))

    def get_stats(self, pmi_id: Optional[str] = None) -> FulfillmentStats:
        data = self.client.get_data('/fulfillment/stats', params={'pmi_id': pmi_id}, fallback_message='Failed to fetch statistics')
        return FulfillmentStats.from_api(data if isinstance(data, dict) else None)

    def get_eligible_donors(self, fulfillment_id: str) -> List[EligibleDonor]:
        data = self.client.get_data(f'/fulfillment/{fulfillment_id}', fallback_message='Failed to fetch eligible donors')
        rows = (data or {}).get('eligible_donors') or []
        return [EligibleDonor.from_api(row) for row in rows]

    def search_donors(self, fulfillment_id: str) -> List[EligibleDonor]:
        """Ranked donor candidates, in the server's ``recommendation_rank`` order."""

        body = self.client.get(f'/fulfillment/{fulfillment_id}/search-donors', fallback_message='Failed to search donors')
        body = body if isinstance(body, dict) else {}
        rows = body.get('eligible_donors')
        if rows is None:
            rows = (body.get('data') or {}).get('eligible_donors') or []
        return [EligibleDonor.from_api(row) for row in rows]

    def send_notifications(self, campaign_id: str, fulfillment_id: str, donor_count: int) -> int:
        if donor_count < 1:
            raise ValueError('Select at least one donor to notify.')
        body = self.client.post(
            f'/fulfillment/{campaign_id}/send-notifications',
            {'campaign_id': campaign_id, 'fulfillment_id': fulfillment_id, 'donor_count': donor_count},
            fallback_message='Failed to send notifications',
        )
        body = body if isinstance(body, dict) else {}
        if body.get('success') is False:
            raise ApiValidationError(body.get('message') or 'Failed to send notifications', payload=body)
        return int((body.get('data') or {}).get('notified_count') or 0)

    # Donor confirmations

    def get_confirmations(self, fulfillment_id: str) -> List[DonorConfirmation]:
        rows = self.client.get_list(f'/fulfillment/{fulfillment_id}/confirmations', fallback_message='Failed to fetch confirmations')
        return [DonorConfirmation.from_api(row) for row in rows]

    def verify_code(self, unique_code: str, pmi_id: str) -> Dict[str, Any]:
        code = parse_donor_code(unique_code)
        data = self.client.request(
            'POST',
            '/fulfillment/verify-code',
            json={'unique_code': code.value, 'pmi_id': pmi_id},
            fallback_message='Failed to verify code',
        )
        data = data if isinstance(data, dict) else {}
        if data.get('success') is False:
            raise ApiValidationError(data.get('message') or 'Failed to verify code', payload=data)
        return data.get('data') or {}

    def complete_donation(
        self,
        *,
        confirmation_id: str,
        pmi_id: str,
        quantity: int = 1,
        notes: str = '',
        medical_notes: str = '',
        health_screening: Optional[Dict[str, Any]] = None,
    ) -> MutationResult:
        if int(quantity) < 1:
            raise ValueError('Donated quantity must be at least 1.')
        payload: Dict[str, Any] = {
            'confirmation_id': confirmation_id,
            'pmi_id': pmi_id,
            'quantity': int(quantity),
            'notes': notes,
            'medical_notes': medical_notes,
        }
        if health_screening:
            payload['health_screening'] = health_screening
        return self.client.mutate('POST', '/fulfillment/complete-donation', payload, fallback_message='Failed to complete donation')

    # Polling subscriptions

    def subscribe_fulfillment(self, fulfillment_id: str, callback: Callable[[FulfillmentRequest], None], *, interval: Optional[float] = None) -> Unsubscribe:
        """Poll one fulfillment and hand each snapshot to ``callback`` until unsubscribed."""

        def poll():
            try:
                callback(self.get_by_id(fulfillment_id))
            except ApiError as exc:
                logger.warning('Polling fulfillment %s failed: %s', fulfillment_id, exc.message)

        interval = interval or getattr(settings, 'FULFILLMENT_POLL_INTERVAL', 5)
        timer = RepeatingTimer(interval, poll, name=f'fulfillment-{fulfillment_id}', run_immediately=True).start()
        return timer.cancel

    def subscribe_fulfillments(self, callback: Callable[[List[FulfillmentRequest]], None], *, interval: Optional[float] = None, **filters) -> Unsubscribe:
        def poll():
            try:
                items, _ = self.get_all(**filters)
            except ApiError as exc:
                logger.warning('Polling fulfillment list failed: %s', exc.message)
                return
            callback(items)

        interval = interval or getattr(settings, 'FULFILLMENT_LIST_POLL_INTERVAL', 10)
        timer = RepeatingTimer(interval, poll, name='fulfillment-list', run_immediately=True).start()
        return timer.cancel
