from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from blood.services.api import ApiClient, ApiValidationError, MutationResult
from institution.session import InstitutionSession

logger = logging.getLogger(__name__)


def login(email: str, password: str, client: Optional[ApiClient] = None) -> InstitutionSession:
    client = client or ApiClient()
    body = client.post(
        '/institutions/login',
        {'email': email.strip(), 'password': password},
        fallback_message='Login failed. Check your email and password.',
    )
    if not isinstance(body, dict) or not body.get('success') or not isinstance(body.get('data'), dict):
        message = body.get('message') if isinstance(body, dict) else None
        raise ApiValidationError(message or 'Login failed. Check your email and password.', payload=body)
    session = InstitutionSession.from_login(body['data'])
    logger.info('Institution %s (%s) logged in', session.id, session.institution_type)
    return session


def register(cleaned: Dict[str, Any], client: Optional[ApiClient] = None) -> MutationResult:
    client = client or ApiClient()
    payload = {
        'institution_type': cleaned['institution_type'],
        'institution_name': cleaned['institution_name'].strip(),
        'email': cleaned['email'].strip(),
        'password': cleaned['password'],
        'address': cleaned['address'].strip(),
        'phone_number': cleaned.get('phone_number') or '',
        'latitude': float(cleaned['latitude']),
        'longitude': float(cleaned['longitude']),
    }
    return client.mutate('POST', '/institutions/register', payload, fallback_message='Registration failed.')
