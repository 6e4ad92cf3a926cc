from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .api import ApiError

logger = logging.getLogger(__name__)


class RemoteResource:
    """Loading/error/data holder for one remote collection or record.

    ``loader`` performs the fetch. A failing fetch leaves ``data`` empty and
    stores the error text so the page can render an inline error panel.
    """

    def __init__(self, loader: Callable[[], Any], *, empty: Callable[[], Any] = list, name: str = "resource"):
        self.loader = loader
        self.empty = empty
        self.name = name
        self.data: Any = empty()
        self.loading = False
        self.error: Optional[str] = None

    def refetch(self) -> "RemoteResource":
        self.loading = True
        try:
            self.data = self.loader()
            self.error = None
        except ApiError as exc:
            logger.warning("Failed to load %s: %s", self.name, exc.message)
            self.data = self.empty()
            self.error = exc.message
        finally:
            self.loading = False
        return self

    @property
    def ok(self) -> bool:
        return self.error is None

    def __iter__(self):
        return iter(self.data or [])

    def __repr__(self):
        return f"<RemoteResource {self.name} error={self.error!r}>"


def load(loader: Callable[[], Any], *, empty: Callable[[], Any] = list, name: str = "resource") -> RemoteResource:
    return RemoteResource(loader, empty=empty, name=name).refetch()
