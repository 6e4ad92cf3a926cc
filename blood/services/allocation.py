"""Allocation sufficiency and pickup split calculator.

A pickup of ``quantity`` units may be scheduled only when the units still
pending on the request's allocations plus the unallocated ("free") stock cover
it. Allocations are always drawn first, in the order the server returns them;
free stock only tops up the remainder. Nothing here talks to the network.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

PICKUP_READY = "pickup_ready"
CAMPAIGN_NEEDED = "campaign_needed"

ALLOCATION_STATUSES = ("allocated", "partial_pickup", "picked_up", "expired", "cancelled")


class QuantityExceedsAvailable(ValueError):
    """A manual pickup quantity is negative or above its batch ceiling."""


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class AllocationBatch:
    allocation_id: str
    quantity_allocated: int
    quantity_picked_up: int = 0
    batch_number: str = ""
    status: str = "allocated"
    expiry_date: Optional[str] = None
    fulfillment_id: Optional[str] = None
    fulfillment_patient: Optional[str] = None
    warning: Optional[str] = None

    @property
    def quantity_pending(self) -> int:
        return max(self.quantity_allocated - self.quantity_picked_up, 0)

    @property
    def is_picked_up(self) -> bool:
        return self.quantity_pending == 0

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "AllocationBatch":
        allocated = _int(raw.get("quantity_allocated"))
        picked_up = _int(raw.get("quantity_picked_up"))
        # Some endpoints only report what is still pending.
        if not allocated and raw.get("quantity_pending") is not None:
            allocated = picked_up + _int(raw.get("quantity_pending"))
        return cls(
            allocation_id=str(raw.get("allocation_id") or raw.get("id") or ""),
            quantity_allocated=allocated,
            quantity_picked_up=picked_up,
            batch_number=raw.get("batch_number") or "",
            status=raw.get("status") or "allocated",
            expiry_date=raw.get("expiry_date"),
            fulfillment_id=raw.get("fulfillment_id"),
            fulfillment_patient=raw.get("fulfillment_patient"),
            warning=raw.get("warning"),
        )


@dataclass(frozen=True)
class FreeStockBatch:
    stock_id: str
    quantity: int
    batch_number: str = ""
    expiry_date: Optional[str] = None
    warning: Optional[str] = None
    source: str = "free_stock"

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "FreeStockBatch":
        return cls(
            stock_id=str(raw.get("stock_id") or raw.get("id") or ""),
            quantity=max(_int(raw.get("quantity")), 0),
            batch_number=raw.get("batch_number") or "",
            expiry_date=raw.get("expiry_date"),
            warning=raw.get("warning"),
        )


@dataclass(frozen=True)
class AllocationSummary:
    total_available: int = 0
    total_needed: int = 0
    total_allocations: int = 0
    pending_quantity: int = 0
    total_from_allocation: int = 0
    total_from_free_stock: int = 0
    allocation_count: int = 0
    free_stock_count: int = 0
    can_complete_pickup: bool = False
    note: str = ""

    @classmethod
    def from_api(cls, raw: Optional[Dict[str, Any]]) -> "AllocationSummary":
        raw = raw or {}
        return cls(
            total_available=_int(raw.get("total_available")),
            total_needed=_int(raw.get("total_needed")),
            total_allocations=_int(raw.get("total_allocations")),
            pending_quantity=_int(raw.get("pending_quantity")),
            total_from_allocation=_int(raw.get("total_from_allocation")),
            total_from_free_stock=_int(raw.get("total_from_free_stock")),
            allocation_count=_int(raw.get("allocation_count")),
            free_stock_count=_int(raw.get("free_stock_count")),
            can_complete_pickup=bool(raw.get("can_complete_pickup")),
            note=raw.get("note") or "",
        )


@dataclass(frozen=True)
class AllocationSnapshot:
    """Parsed ``/allocation/request/{id}/with-free-stock`` payload."""

    allocations: Tuple[AllocationBatch, ...] = ()
    free_stock: Tuple[FreeStockBatch, ...] = ()
    summary: AllocationSummary = field(default_factory=AllocationSummary)

    @classmethod
    def from_api(cls, raw: Optional[Dict[str, Any]]) -> "AllocationSnapshot":
        raw = raw or {}
        return cls(
            allocations=tuple(AllocationBatch.from_api(item) for item in raw.get("allocations") or []),
            free_stock=tuple(FreeStockBatch.from_api(item) for item in raw.get("free_stock") or []),
            summary=AllocationSummary.from_api(raw.get("summary")),
        )


def classify_request(quantity: int, summary: Optional[AllocationSummary]) -> str:
    """Decide whether a request row offers "create pickup" or "create campaign".

    Only the server's ``total_available`` is consulted.
    """

    if summary is None:
        return CAMPAIGN_NEEDED
    return PICKUP_READY if summary.total_available >= _int(quantity) else CAMPAIGN_NEEDED


class PickupPlan:
    """Per-batch pickup quantities for one blood request.

    Quantities start at zero; :meth:`auto_fill` proposes a split and the
    operator may then override any row up to that row's ceiling.
    """

    def __init__(self, quantity_needed: int, allocations: Sequence[AllocationBatch] = (), free_stock: Sequence[FreeStockBatch] = ()):
        quantity_needed = _int(quantity_needed)
        if quantity_needed < 0:
            raise ValueError("quantity_needed cannot be negative")
        self.quantity_needed = quantity_needed
        self.allocations: Tuple[AllocationBatch, ...] = tuple(allocations)
        self.free_stock: Tuple[FreeStockBatch, ...] = tuple(free_stock)
        self.allocation_quantities: Dict[str, int] = {batch.allocation_id: 0 for batch in self.allocations}
        self.free_stock_quantities: Dict[str, int] = {batch.stock_id: 0 for batch in self.free_stock}

    @property
    def total_allocation_pending(self) -> int:
        return sum(batch.quantity_pending for batch in self.allocations)

    @property
    def total_free_stock(self) -> int:
        return sum(batch.quantity for batch in self.free_stock)

    @property
    def total_available(self) -> int:
        return self.total_allocation_pending + self.total_free_stock

    @property
    def is_sufficient(self) -> bool:
        return self.total_available >= self.quantity_needed

    @property
    def shortage(self) -> int:
        return max(self.quantity_needed - self.total_available, 0)

    @property
    def total_from_allocations(self) -> int:
        return sum(self.allocation_quantities.values())

    @property
    def total_from_free_stock(self) -> int:
        return sum(self.free_stock_quantities.values())

    @property
    def total_selected(self) -> int:
        return self.total_from_allocations + self.total_from_free_stock

    def reset(self) -> None:
        for key in self.allocation_quantities:
            self.allocation_quantities[key] = 0
        for key in self.free_stock_quantities:
            self.free_stock_quantities[key] = 0

    def auto_fill(self) -> "PickupPlan":
        """Propose the default split.

        Allocations are drained first in server order, then free stock fills
        the remainder greedily. When the combined supply cannot cover the
        request every row stays at zero so the shortage is visible.
        """

        self.reset()
        if not self.is_sufficient:
            return self

        remaining = self.quantity_needed
        for batch in self.allocations:
            if remaining <= 0:
                break
            take = min(batch.quantity_pending, remaining)
            self.allocation_quantities[batch.allocation_id] = take
            remaining -= take

        for batch in self.free_stock:
            if remaining <= 0:
                break
            take = min(batch.quantity, remaining)
            self.free_stock_quantities[batch.stock_id] = take
            remaining -= take
        return self

    def _check(self, value: Any, ceiling: int, label: str) -> int:
        quantity = _int(value, default=-1)
        if quantity < 0:
            raise QuantityExceedsAvailable(f"Quantity for {label} cannot be negative.")
        if quantity > ceiling:
            raise QuantityExceedsAvailable(f"Quantity for {label} cannot exceed {ceiling} available units.")
        return quantity

    def set_allocation_quantity(self, allocation_id: str, value: Any) -> int:
        batch = next((item for item in self.allocations if item.allocation_id == allocation_id), None)
        if batch is None:
            raise KeyError(allocation_id)
        quantity = self._check(value, batch.quantity_pending, batch.batch_number or allocation_id)
        self.allocation_quantities[allocation_id] = quantity
        return quantity

    def set_free_stock_quantity(self, stock_id: str, value: Any) -> int:
        batch = next((item for item in self.free_stock if item.stock_id == stock_id), None)
        if batch is None:
            raise KeyError(stock_id)
        quantity = self._check(value, batch.quantity, batch.batch_number or stock_id)
        self.free_stock_quantities[stock_id] = quantity
        return quantity

    def can_submit(self, pickup_date: Any = None, pickup_time: Any = None) -> bool:
        return bool(
            pickup_date
            and pickup_time
            and self.total_selected > 0
            and self.total_selected >= self.quantity_needed
        )

    def allocation_rows(self) -> List[Tuple[AllocationBatch, int]]:
        return [(batch, self.allocation_quantities[batch.allocation_id]) for batch in self.allocations]

    def free_stock_rows(self) -> List[Tuple[FreeStockBatch, int]]:
        return [(batch, self.free_stock_quantities[batch.stock_id]) for batch in self.free_stock]

    def to_payload(self, pickup_date: str, pickup_time: str, notes: str = "") -> Dict[str, Any]:
        """Body for ``confirm-with-free-stock``; rows left at zero are omitted."""

        payload: Dict[str, Any] = {
            "pickupDate": str(pickup_date),
            "pickupTime": str(pickup_time),
            "allocations": [
                {"allocation_id": key, "quantity_picked_up": value}
                for key, value in self.allocation_quantities.items()
                if value > 0
            ],
            "free_stock": [
                {"stock_id": key, "quantity_picked_up": value}
                for key, value in self.free_stock_quantities.items()
                if value > 0
            ],
        }
        if notes:
            payload["notes"] = notes
        return payload


def plan_pickup(
    quantity_needed: int,
    allocations: Iterable[AllocationBatch] = (),
    free_stock: Iterable[FreeStockBatch] = (),
) -> PickupPlan:
    return PickupPlan(quantity_needed, tuple(allocations), tuple(free_stock)).auto_fill()
