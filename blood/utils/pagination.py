from __future__ import annotations

from dataclasses import dataclass
from math import ceil
from typing import Any, List, Sequence


@dataclass(frozen=True)
class ClientPage:
    items: List[Any]
    number: int
    total_pages: int
    total_items: int
    per_page: int

    @property
    def has_previous(self) -> bool:
        return self.number > 1

    @property
    def has_next(self) -> bool:
        return self.number < self.total_pages

    @property
    def start_index(self) -> int:
        return (self.number - 1) * self.per_page

    @property
    def page_range(self) -> range:
        return range(1, self.total_pages + 1)


def paginate(rows: Sequence[Any], page, per_page: int = 10) -> ClientPage:
    """Slice an already-fetched list; out-of-range pages clamp to the nearest valid page."""

    if per_page < 1:
        raise ValueError('per_page must be at least 1')
    total = len(rows)
    total_pages = max(1, ceil(total / per_page))
    try:
        number = int(page)
    except (TypeError, ValueError):
        number = 1
    number = min(max(number, 1), total_pages)
    start = (number - 1) * per_page
    return ClientPage(list(rows[start:start + per_page]), number, total_pages, total, per_page)
