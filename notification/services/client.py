"""Read/write access to the ``notifications`` table over PostgREST."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from blood.services.api import ApiClient

logger = logging.getLogger(__name__)

TABLE = 'notifications'

NOTIFICATION_TYPES = ('donation', 'pickup', 'stock', 'campaign', 'request', 'system')
PRIORITIES = ('low', 'medium', 'high', 'critical')


@dataclass(frozen=True)
class Notification:
    id: str
    institution_id: str
    title: str
    message: str = ''
    type: str = 'system'
    priority: str = 'medium'
    is_read: bool = False
    read_at: Optional[str] = None
    created_at: Optional[str] = None
    related_id: Optional[str] = None
    related_type: Optional[str] = None
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> 'Notification':
        return cls(
            id=str(raw.get('id')),
            institution_id=str(raw.get('institution_id') or ''),
            title=raw.get('title') or '',
            message=raw.get('message') or '',
            type=raw.get('type') or 'system',
            priority=raw.get('priority') or 'medium',
            is_read=bool(raw.get('is_read')),
            read_at=raw.get('read_at'),
            created_at=raw.get('created_at'),
            related_id=raw.get('related_id'),
            related_type=raw.get('related_type'),
            action_url=raw.get('action_url'),
            action_label=raw.get('action_label'),
            metadata=raw.get('metadata') or {},
        )

    def mark_read(self, read_at: Optional[str] = None) -> 'Notification':
        return replace(self, is_read=True, read_at=read_at or timezone.now().isoformat())

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _parse_content_range(value: Optional[str]) -> Optional[int]:
    """``0-24/57`` or ``*/0`` -> total row count."""

    if not value or '/' not in value:
        return None
    total = value.rsplit('/', 1)[1]
    return int(total) if total.isdigit() else None


class NotificationApi:
    def __init__(self, *, base_url: Optional[str] = None, api_key: Optional[str] = None, access_token: Optional[str] = None, session=None):
        base_url = base_url if base_url is not None else getattr(settings, 'SUPABASE_URL', '')
        api_key = api_key if api_key is not None else getattr(settings, 'SUPABASE_ANON_KEY', '')
        if not base_url or not api_key:
            raise ImproperlyConfigured('SUPABASE_URL and SUPABASE_ANON_KEY must be set to read notifications.')
        self.client = ApiClient(access_token or api_key, base_url=f"{base_url.rstrip('/')}/rest/v1", session=session)
        self.client.session.headers['apikey'] = api_key

    def list(self, institution_id: str, *, limit: Optional[int] = None) -> List[Notification]:
        limit = limit or getattr(settings, 'NOTIFICATION_FEED_LIMIT', 50)
        rows = self.client.request(
            'GET',
            TABLE,
            params={'select': '*', 'institution_id': f'eq.{institution_id}', 'order': 'created_at.desc', 'limit': limit},
            fallback_message='Failed to fetch notifications',
        )
        return [Notification.from_api(row) for row in rows or []]

    def count_unread(self, institution_id: str) -> int:
        response = self.client.send(
            'GET',
            TABLE,
            params={'select': 'id', 'institution_id': f'eq.{institution_id}', 'is_read': 'eq.false', 'limit': 1},
            headers={'Prefer': 'count=exact'},
            fallback_message='Failed to count unread notifications',
        )
        total = _parse_content_range(response.headers.get('Content-Range'))
        if total is None:
            logger.debug('No Content-Range on unread count; falling back to body length')
            rows = response.json() if response.content else []
            return len(rows)
        return total

    def mark_read(self, notification_id: str, institution_id: str, read_at: Optional[str] = None) -> None:
        self.client.request(
            'PATCH',
            TABLE,
            params={'id': f'eq.{notification_id}', 'institution_id': f'eq.{institution_id}'},
            json={'is_read': True, 'read_at': read_at or timezone.now().isoformat()},
            headers={'Prefer': 'return=minimal'},
            fallback_message='Failed to mark notification as read',
        )

    def mark_all_read(self, institution_id: str, read_at: Optional[str] = None) -> None:
        self.client.request(
            'PATCH',
            TABLE,
            params={'institution_id': f'eq.{institution_id}', 'is_read': 'eq.false'},
            json={'is_read': True, 'read_at': read_at or timezone.now().isoformat()},
            headers={'Prefer': 'return=minimal'},
            fallback_message='Failed to mark all notifications as read',
        )

    def changed_since(self, filter_params: Dict[str, str], column: str, cursor: str) -> List[Notification]:
        """Rows matching ``filter_params`` whose ``column`` moved past ``cursor``, oldest first."""

        params = dict(filter_params)
        params.update({'select': '*', column: f'gt.{cursor}', 'order': f'{column}.asc'})
        rows = self.client.request('GET', TABLE, params=params, fallback_message='Failed to poll notifications')
        return [Notification.from_api(row) for row in rows or []]
