from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from blood.services.api import ApiError

from .client import FulfillmentApi
from .progress import FulfillmentProgressSummary, compute_fulfillment_stats
from .records import DonorConfirmation, EligibleDonor, FulfillmentRequest

logger = logging.getLogger(__name__)


class FulfillmentStore:
    """State for the fulfillment pages of one request cycle.

    Reads and lifecycle actions record failures in ``error`` and return
    ``None``/``False``; code verification and donation completion re-raise so
    the caller can show the server's message next to the form.
    """

    def __init__(self, api: FulfillmentApi):
        self.api = api
        self.fulfillments: List[FulfillmentRequest] = []
        self.pagination = None
        self.current: Optional[FulfillmentRequest] = None
        self.confirmations: List[DonorConfirmation] = []
        self.eligible_donors: List[EligibleDonor] = []
        self.loading = False
        self.error: Optional[str] = None

    def _run(self, label: str, func, *args, **kwargs):
        self.loading = True
        self.error = None
        try:
            return func(*args, **kwargs)
        except ApiError as exc:
            logger.warning('%s failed: %s', label, exc.message)
            self.error = exc.message
            return None
        finally:
            self.loading = False

    def fetch_fulfillments(self, **filters) -> List[FulfillmentRequest]:
        result = self._run('Fetching fulfillments', self.api.get_all, **filters)
        self.fulfillments, self.pagination = result if result else ([], None)
        return self.fulfillments

    def fetch_fulfillment(self, fulfillment_id: str) -> Optional[FulfillmentRequest]:
        self.current = self._run('Fetching fulfillment', self.api.get_by_id, fulfillment_id)
        return self.current

    def fetch_confirmations(self, fulfillment_id: str) -> List[DonorConfirmation]:
        self.confirmations = self._run('Fetching confirmations', self.api.get_confirmations, fulfillment_id) or []
        return self.confirmations

    def load_detail(self, fulfillment_id: str) -> Optional[FulfillmentRequest]:
        if self.fetch_fulfillment(fulfillment_id) is None:
            self.confirmations = []
            return None
        error = self.error
        self.fetch_confirmations(fulfillment_id)
        self.error = self.error or error
        return self.current

    def create(self, data: Dict[str, Any]) -> Optional[FulfillmentRequest]:
        created = self._run('Creating fulfillment', self.api.create, data)
        if created is not None:
            self.current = created
            self.fulfillments.insert(0, created)
        return created

    def initiate(self, fulfillment_id: str) -> bool:
        if self._run('Initiating fulfillment', self.api.initiate, fulfillment_id) is None:
            return False
        self.fetch_fulfillment(fulfillment_id)
        return True

    def cancel(self, fulfillment: FulfillmentRequest, reason: str) -> bool:
        self.loading = True
        self.error = None
        try:
            self.api.cancel(fulfillment, reason)
        except (ApiError, ValueError) as exc:
            self.error = getattr(exc, 'message', None) or str(exc)
            logger.warning('Cancelling fulfillment %s failed: %s', fulfillment.id, self.error)
            return False
        finally:
            self.loading = False
        self.fetch_fulfillment(fulfillment.id)
        return True

    def search_donors(self, fulfillment_id: str) -> List[EligibleDonor]:
        self.eligible_donors = self._run('Searching donors', self.api.search_donors, fulfillment_id) or []
        return self.eligible_donors

    def verify_code(self, unique_code: str, pmi_id: str) -> Dict[str, Any]:
        return self.api.verify_code(unique_code, pmi_id)

    def complete_donation(self, **kwargs):
        result = self.api.complete_donation(**kwargs)
        if self.current is not None:
            self.fetch_confirmations(self.current.id)
        return result

    @property
    def progress(self) -> FulfillmentProgressSummary:
        return compute_fulfillment_stats(self.current, self.confirmations)
