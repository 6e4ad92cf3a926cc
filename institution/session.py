"""Per-browser institution session.

Login builds an :class:`InstitutionSession` from the API's login payload and
stores it in the Django session; logout flushes it. Views receive it as
``request.institution`` through :func:`institution_required`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from functools import wraps
from typing import Any, Dict, Optional

from django.contrib import messages
from django.shortcuts import redirect

from blood.constants import INSTITUTION_HOSPITAL, INSTITUTION_PMI
from blood.services.api import ApiClient

SESSION_KEY = 'institution'


@dataclass(frozen=True)
class InstitutionSession:
    id: str
    institution_type: str
    institution_name: str
    email: str = ''
    address: str = ''
    phone_number: str = ''
    token: str = ''

    @property
    def is_pmi(self) -> bool:
        return self.institution_type == INSTITUTION_PMI

    @property
    def is_hospital(self) -> bool:
        return self.institution_type == INSTITUTION_HOSPITAL

    @classmethod
    def from_login(cls, data: Dict[str, Any]) -> 'InstitutionSession':
        institution = data.get('institution') or {}
        return cls(
            id=str(institution.get('id')),
            institution_type=institution.get('institution_type') or '',
            institution_name=institution.get('institution_name') or '',
            email=institution.get('email') or '',
            address=institution.get('address') or '',
            phone_number=institution.get('phone_number') or '',
            token=data.get('token') or '',
        )

    @classmethod
    def from_request(cls, request) -> Optional['InstitutionSession']:
        raw = request.session.get(SESSION_KEY)
        if not isinstance(raw, dict) or not raw.get('id'):
            return None
        try:
            return cls(**raw)
        except TypeError:
            # Cookie written by an older release; make the user log in again.
            return None

    def start(self, request) -> None:
        request.session.cycle_key()
        request.session[SESSION_KEY] = asdict(self)

    @staticmethod
    def end(request) -> None:
        request.session.flush()

    def api_client(self) -> ApiClient:
        return ApiClient(self.token)


def institution_required(view_func=None, *, role: Optional[str] = None):
    """Require a logged-in institution, optionally of one ``role`` (hospital/pmi)."""

    def decorator(func):
        @wraps(func)
        def wrapper(request, *args, **kwargs):
            institution = InstitutionSession.from_request(request)
            if institution is None:
                return redirect('institution-login')
            if role and institution.institution_type != role:
                messages.error(request, 'This page is not available for your institution type.')
                return redirect('institution-home')
            request.institution = institution
            return func(request, *args, **kwargs)

        return wrapper

    if view_func is not None:
        return decorator(view_func)
    return decorator
