from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set

from .records import EligibleDonor

TIER_BEST = 'best'
TIER_GOOD = 'good'
TIER_FAIR = 'fair'
TIER_POOR = 'poor'

TIER_LABELS = {
    TIER_BEST: 'Excellent',
    TIER_GOOD: 'Good',
    TIER_FAIR: 'Fair',
    TIER_POOR: 'Low',
}


def score_tier(final_score) -> str:
    """Bucket a server-computed ``final_score`` for display (80 / 60 / 40 cut-offs)."""

    try:
        score = float(final_score)
    except (TypeError, ValueError):
        return TIER_POOR
    if score >= 80:
        return TIER_BEST
    if score >= 60:
        return TIER_GOOD
    if score >= 40:
        return TIER_FAIR
    return TIER_POOR


def filter_by_radius(donors: Iterable[EligibleDonor], radius_km: Optional[float]) -> List[EligibleDonor]:
    """Drop donors beyond ``radius_km`` while keeping the server's ranking order."""

    if radius_km is None:
        return list(donors)
    return [donor for donor in donors if donor.distance_km is not None and donor.distance_km <= radius_km]


@dataclass
class DonorSelection:
    """Which donors the operator ticked on the search page. Never persisted server-side."""

    donors: Sequence[EligibleDonor] = ()
    selected: Set[str] = field(default_factory=set)

    def toggle(self, donor_id: str) -> bool:
        if donor_id in self.selected:
            self.selected.discard(donor_id)
            return False
        if donor_id in {donor.donor_id for donor in self.donors}:
            self.selected.add(donor_id)
            return True
        raise KeyError(donor_id)

    def select_all(self) -> None:
        self.selected = {donor.donor_id for donor in self.donors}

    def deselect_all(self) -> None:
        self.selected = set()

    def restrict(self, donor_ids: Iterable[str]) -> None:
        known = {donor.donor_id for donor in self.donors}
        self.selected = {donor_id for donor_id in donor_ids if donor_id in known}

    @property
    def count(self) -> int:
        return len(self.selected)

    @property
    def all_selected(self) -> bool:
        return bool(self.donors) and len(self.selected) == len(self.donors)

    def chosen(self) -> List[EligibleDonor]:
        return [donor for donor in self.donors if donor.donor_id in self.selected]
