"""Typed views over the fulfillment payloads returned by the portal API.

The server owns the state machine; these records only mirror it for display
and for the few client-side guards (cancel/initiate availability).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from django.db import models


class FulfillmentStatus(models.TextChoices):
    INITIATED = 'initiated', 'Initiated'
    SEARCHING_DONORS = 'searching_donors', 'Searching donors'
    DONORS_FOUND = 'donors_found', 'Donors found'
    IN_PROGRESS = 'in_progress', 'In progress'
    PARTIALLY_FULFILLED = 'partially_fulfilled', 'Partially fulfilled'
    FULFILLED = 'fulfilled', 'Fulfilled'
    FAILED = 'failed', 'Failed'
    CANCELLED = 'cancelled', 'Cancelled'


class ConfirmationStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    CONFIRMED = 'confirmed', 'Confirmed'
    REJECTED = 'rejected', 'Rejected'
    EXPIRED = 'expired', 'Expired'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'


class UrgencyLevel(models.TextChoices):
    LOW = 'low', 'Low'
    MEDIUM = 'medium', 'Medium'
    HIGH = 'high', 'High'
    CRITICAL = 'critical', 'Critical'


TERMINAL_FULFILLMENT_STATUSES = frozenset({
    FulfillmentStatus.FULFILLED.value,
    FulfillmentStatus.FAILED.value,
    FulfillmentStatus.CANCELLED.value,
})

TERMINAL_CONFIRMATION_STATUSES = frozenset({
    ConfirmationStatus.REJECTED.value,
    ConfirmationStatus.EXPIRED.value,
    ConfirmationStatus.COMPLETED.value,
    ConfirmationStatus.FAILED.value,
})


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class DonorConfirmation:
    id: str
    status: str
    fulfillment_request_id: str = ''
    donor_id: str = ''
    donor_name: str = ''
    donor_phone: str = ''
    donor_blood_type: str = ''
    unique_code: str = ''
    code_generated_at: Optional[str] = None
    code_expires_at: Optional[str] = None
    code_verified: bool = False
    code_verified_at: Optional[str] = None
    verified_by: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_CONFIRMATION_STATUSES

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> 'DonorConfirmation':
        donor = raw.get('donor') or raw.get('donors') or {}
        return cls(
            id=str(raw.get('id') or ''),
            status=raw.get('status') or ConfirmationStatus.PENDING.value,
            fulfillment_request_id=str(raw.get('fulfillment_request_id') or ''),
            donor_id=str(raw.get('donor_id') or donor.get('id') or ''),
            donor_name=donor.get('full_name') or raw.get('donor_name') or '',
            donor_phone=donor.get('phone_number') or '',
            donor_blood_type=donor.get('blood_type') or '',
            unique_code=raw.get('unique_code') or '',
            code_generated_at=raw.get('code_generated_at'),
            code_expires_at=raw.get('code_expires_at'),
            code_verified=bool(raw.get('code_verified')),
            code_verified_at=raw.get('code_verified_at'),
            verified_by=raw.get('verified_by'),
            created_at=raw.get('created_at'),
        )


@dataclass(frozen=True)
class FulfillmentRequest:
    id: str
    blood_request_id: str
    pmi_id: str
    blood_type: str
    quantity_needed: int
    quantity_collected: int = 0
    status: str = FulfillmentStatus.INITIATED.value
    campaign_id: Optional[str] = None
    patient_name: str = ''
    urgency_level: str = UrgencyLevel.MEDIUM.value
    target_donors: int = 0
    confirmed_donors: int = 0
    completed_donors: int = 0
    retry_count: int = 0
    max_retries: int = 0
    search_radius_km: Optional[float] = None
    initiated_at: Optional[str] = None
    completed_at: Optional[str] = None
    cancelled_at: Optional[str] = None
    cancellation_reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    donor_confirmations: Tuple[DonorConfirmation, ...] = field(default_factory=tuple)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_FULFILLMENT_STATUSES

    @property
    def can_retry(self) -> bool:
        return self.retry_count < self.max_retries

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> 'FulfillmentRequest':
        return cls(
            id=str(raw.get('id') or ''),
            blood_request_id=str(raw.get('blood_request_id') or ''),
            pmi_id=str(raw.get('pmi_id') or ''),
            blood_type=raw.get('blood_type') or '',
            quantity_needed=_int(raw.get('quantity_needed')),
            quantity_collected=_int(raw.get('quantity_collected')),
            status=raw.get('status') or FulfillmentStatus.INITIATED.value,
            campaign_id=raw.get('campaign_id'),
            patient_name=raw.get('patient_name') or '',
            urgency_level=raw.get('urgency_level') or UrgencyLevel.MEDIUM.value,
            target_donors=_int(raw.get('target_donors')),
            confirmed_donors=_int(raw.get('confirmed_donors')),
            completed_donors=_int(raw.get('completed_donors')),
            retry_count=_int(raw.get('retry_count')),
            max_retries=_int(raw.get('max_retries')),
            search_radius_km=_float(raw.get('search_radius_km')),
            initiated_at=raw.get('initiated_at'),
            completed_at=raw.get('completed_at'),
            cancelled_at=raw.get('cancelled_at'),
            cancellation_reason=raw.get('cancellation_reason'),
            notes=raw.get('notes'),
            created_at=raw.get('created_at'),
            updated_at=raw.get('updated_at'),
            donor_confirmations=tuple(DonorConfirmation.from_api(item) for item in raw.get('donor_confirmations') or ()),
        )


@dataclass(frozen=True)
class EligibleDonor:
    """One row of the server's ranked donor list; the order is the server's."""

    donor_id: str
    full_name: str
    blood_type: str = ''
    phone_number: str = ''
    age: Optional[int] = None
    distance_km: Optional[float] = None
    distance_score: float = 0.0
    history_score: float = 0.0
    commitment_score: float = 0.0
    final_score: float = 0.0
    recommendation_rank: Optional[int] = None
    eligible: bool = True
    total_donations: int = 0
    completion_rate: float = 0.0
    priority_flag: bool = False

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> 'EligibleDonor':
        return cls(
            donor_id=str(raw.get('donor_id') or raw.get('id') or ''),
            full_name=raw.get('full_name') or '',
            blood_type=raw.get('blood_type') or '',
            phone_number=raw.get('phone_number') or '',
            age=raw.get('age'),
            distance_km=_float(raw.get('distance_km')),
            distance_score=_float(raw.get('distance_score')) or 0.0,
            history_score=_float(raw.get('history_score')) or 0.0,
            commitment_score=_float(raw.get('commitment_score')) or 0.0,
            final_score=_float(raw.get('final_score')) or 0.0,
            recommendation_rank=raw.get('recommendation_rank'),
            eligible=raw.get('eligible', True) is not False,
            total_donations=_int(raw.get('total_donations')),
            completion_rate=_float(raw.get('completion_rate')) or 0.0,
            priority_flag=bool(raw.get('priority_flag')),
        )


@dataclass(frozen=True)
class FulfillmentStats:
    total_fulfillments: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    average_completion_time_hours: float = 0.0
    average_donors_per_fulfillment: float = 0.0
    success_rate: float = 0.0

    @classmethod
    def from_api(cls, raw: Optional[Dict[str, Any]]) -> 'FulfillmentStats':
        raw = raw or {}
        return cls(
            total_fulfillments=_int(raw.get('total_fulfillments')),
            active=_int(raw.get('active')),
            completed=_int(raw.get('completed')),
            failed=_int(raw.get('failed')),
            average_completion_time_hours=_float(raw.get('average_completion_time_hours')) or 0.0,
            average_donors_per_fulfillment=_float(raw.get('average_donors_per_fulfillment')) or 0.0,
            success_rate=_float(raw.get('success_rate')) or 0.0,
        )
