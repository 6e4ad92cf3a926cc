"""Progress figures for one fulfillment campaign.

All percentages are whole numbers rounded half-up and every ratio with a zero
denominator reads 0. The calculator is pure: it only looks at the fulfillment
record and its donor confirmations as the API returned them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from blood.utils.numbers import percent

from .records import ConfirmationStatus, DonorConfirmation, FulfillmentRequest, FulfillmentStatus


@dataclass(frozen=True)
class FulfillmentProgressSummary:
    confirmed_count: int = 0
    completed_count: int = 0
    pending_count: int = 0
    rejected_count: int = 0
    expired_count: int = 0
    failed_count: int = 0
    total_notified: int = 0
    response_rate: int = 0
    completion_rate: int = 0
    quantity_progress: int = 0
    progress_percentage: int = 0
    is_completed: bool = False
    is_cancelled: bool = False
    can_initiate: bool = False


EMPTY_SUMMARY = FulfillmentProgressSummary()


def compute_fulfillment_stats(
    fulfillment: Optional[FulfillmentRequest],
    confirmations: Sequence[DonorConfirmation] = (),
) -> FulfillmentProgressSummary:
    if fulfillment is None:
        return EMPTY_SUMMARY

    def count(status: str) -> int:
        return sum(1 for item in confirmations if item.status == status)

    confirmed = count(ConfirmationStatus.CONFIRMED)
    completed = count(ConfirmationStatus.COMPLETED)
    rejected = count(ConfirmationStatus.REJECTED)
    total = len(confirmations)
    quantity_progress = percent(fulfillment.quantity_collected, fulfillment.quantity_needed)

    return FulfillmentProgressSummary(
        confirmed_count=confirmed,
        completed_count=completed,
        pending_count=count(ConfirmationStatus.PENDING),
        rejected_count=rejected,
        expired_count=count(ConfirmationStatus.EXPIRED),
        failed_count=count(ConfirmationStatus.FAILED),
        total_notified=total,
        response_rate=percent(confirmed + rejected, total),
        completion_rate=percent(completed, confirmed),
        quantity_progress=quantity_progress,
        progress_percentage=min(quantity_progress, 100),
        is_completed=(
            fulfillment.status == FulfillmentStatus.FULFILLED
            or fulfillment.quantity_collected >= fulfillment.quantity_needed
        ),
        is_cancelled=fulfillment.status == FulfillmentStatus.CANCELLED,
        can_initiate=fulfillment.status == FulfillmentStatus.INITIATED,
    )


@dataclass(frozen=True)
class FulfillmentProgress:
    """Compact progress view served by the polling endpoint."""

    fulfillment_id: str
    status: str
    quantity_needed: int
    quantity_collected: int
    percentage: int
    confirmed_donors: int
    completed_donors: int
    pending_donors: int
    can_retry: bool

    def as_dict(self) -> dict:
        return dict(self.__dict__)


def fulfillment_progress(fulfillment: FulfillmentRequest) -> FulfillmentProgress:
    pending = sum(1 for item in fulfillment.donor_confirmations if item.status == ConfirmationStatus.PENDING)
    return FulfillmentProgress(
        fulfillment_id=fulfillment.id,
        status=str(fulfillment.status),
        quantity_needed=fulfillment.quantity_needed,
        quantity_collected=fulfillment.quantity_collected,
        percentage=percent(fulfillment.quantity_collected, fulfillment.quantity_needed),
        confirmed_donors=fulfillment.confirmed_donors,
        completed_donors=fulfillment.completed_donors,
        pending_donors=pending,
        can_retry=fulfillment.can_retry,
    )
