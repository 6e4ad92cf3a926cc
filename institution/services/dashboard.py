"""Hospital and PMI dashboard figures.

The metric builders are plain functions over already-fetched rows; the
``load_*`` helpers do the fetching and fall back to counting the request list
when a summary endpoint is unavailable.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from django.conf import settings
from django.utils import timezone

from blood.constants import BLOOD_TYPES
from blood.services.api import ApiError
from blood.services.blood_requests import list_requests
from blood.services.resources import load
from blood.services.stock import fetch_inventory
from blood.utils.formatters import to_datetime
from blood.utils.numbers import percent

logger = logging.getLogger(__name__)

ACTIVE_HOSPITAL_STATUSES = ('pending', 'approved', 'in_fulfillment')
RUNNING_PMI_STATUSES = ('pending', 'approved', 'in_fulfillment', 'pickup_scheduled')


def _status_counts(requests: Iterable[Dict[str, Any]], summary: Optional[Dict[str, Any]]) -> Counter:
    counts = (summary or {}).get('request_counts')
    if isinstance(counts, dict) and counts:
        return Counter({key: int(value or 0) for key, value in counts.items()})
    return Counter(row.get('status') for row in requests)


def requests_by_blood_type(requests: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    counter = Counter({blood_type: 0 for blood_type in BLOOD_TYPES})
    for row in requests:
        if row.get('blood_type') in counter:
            counter[row['blood_type']] += 1
    return [{'blood_type': key, 'count': value} for key, value in sorted(counter.items(), key=lambda item: -item[1])]


def _month_key(year: int, month: int) -> str:
    return date(year, month, 1).strftime('%b %Y')


def monthly_trend(requests: Iterable[Dict[str, Any]], *, today: Optional[date] = None, months: int = 12) -> List[Dict[str, Any]]:
    """Request counts for the last ``months`` calendar months, oldest first."""

    today = today or timezone.localdate()
    buckets: List[tuple] = []
    year, month = today.year, today.month
    for _ in range(months):
        buckets.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    buckets.reverse()
    counts = Counter()
    for row in requests:
        created = to_datetime(row.get('created_at'))
        if created is not None:
            local = timezone.localtime(created)
            counts[(local.year, local.month)] += 1
    return [{'label': _month_key(y, m), 'count': counts[(y, m)]} for y, m in buckets]


def yearly_trend(requests: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    counts = Counter()
    for row in requests:
        created = to_datetime(row.get('created_at'))
        if created is not None:
            counts[timezone.localtime(created).year] += 1
    return [{'year': year, 'count': counts[year]} for year in sorted(counts)]


def recent_requests(requests: Sequence[Dict[str, Any]], limit: int = 5) -> List[Dict[str, Any]]:
    return sorted(requests, key=lambda row: row.get('created_at') or '', reverse=True)[:limit]


def hospital_metrics(requests: Sequence[Dict[str, Any]], summary: Optional[Dict[str, Any]] = None, *, today: Optional[date] = None) -> Dict[str, Any]:
    counts = _status_counts(requests, summary)
    total = sum(counts.values())
    completed = counts['completed']
    return {
        'total_requests': total,
        'active_requests': sum(counts[status] for status in ACTIVE_HOSPITAL_STATUSES),
        'completed_requests': completed,
        'ready_for_pickup': counts['pickup_scheduled'],
        'fulfillment_rate': percent(completed, total),
        'requests_by_blood_type': requests_by_blood_type(requests),
        'monthly_trend': monthly_trend(requests, today=today),
        'yearly_trend': yearly_trend(requests),
        'recent_requests': recent_requests(requests),
        'upcoming_pickups': list((summary or {}).get('upcoming_pickups') or []),
    }


def stock_by_type(inventory: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sum batches per blood type keeping the earliest expiry; lowest stock first."""

    grouped: Dict[str, Dict[str, Any]] = {}
    for row in inventory:
        blood_type = row.get('blood_type')
        if not blood_type:
            continue
        entry = grouped.setdefault(blood_type, {'blood_type': blood_type, 'quantity': 0, 'expiry_date': None})
        entry['quantity'] += int(row.get('quantity') or 0)
        expiry = row.get('expiry_date')
        if expiry and (entry['expiry_date'] is None or expiry < entry['expiry_date']):
            entry['expiry_date'] = expiry
    return sorted(grouped.values(), key=lambda entry: entry['quantity'])


def low_stock_alerts(stock: Iterable[Dict[str, Any]], *, threshold: Optional[int] = None, today: Optional[date] = None, limit: int = 5) -> List[Dict[str, Any]]:
    threshold = threshold if threshold is not None else getattr(settings, 'LOW_STOCK_THRESHOLD', 5)
    today = today or timezone.localdate()
    alerts = []
    for entry in stock:
        if entry['quantity'] >= threshold:
            continue
        expiry = to_datetime(entry.get('expiry_date'))
        days_left = (expiry.date() - today).days if expiry else None
        alerts.append({**entry, 'days_left': days_left})
    return alerts[:limit]


def pmi_metrics(
    requests: Sequence[Dict[str, Any]],
    inventory: Sequence[Dict[str, Any]],
    summary: Optional[Dict[str, Any]] = None,
    campaigns: Sequence[Dict[str, Any]] = (),
    *,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    counts = _status_counts(requests, summary)
    total = sum(counts.values())
    completed = counts['completed']
    stock = stock_by_type(inventory)
    return {
        'total_requests': total,
        'running_requests': sum(counts[status] for status in RUNNING_PMI_STATUSES),
        'completed_requests': completed,
        'fulfillment_rate': percent(completed, total),
        'total_stock': sum(entry['quantity'] for entry in stock),
        'stock_by_type': stock,
        'low_stock_alerts': low_stock_alerts(stock, today=today),
        'active_campaigns': sum(1 for row in campaigns if row.get('status') == 'active' and row.get('type') == 'fulfillment'),
        'monthly_trend': monthly_trend(requests, today=today),
        'yearly_trend': yearly_trend(requests),
        'recent_requests': recent_requests(requests),
    }


def _optional_summary(client, path: str) -> Optional[Dict[str, Any]]:
    try:
        data = client.get_data(path)
    except ApiError as exc:
        logger.info('Dashboard summary %s unavailable, counting requests instead: %s', path, exc.message)
        return None
    return data if isinstance(data, dict) else None


def load_dashboard(institution) -> Dict[str, Any]:
    """Fetch everything the landing page shows for ``institution``."""

    client = institution.api_client()
    requests = load(lambda: list_requests(client, institution), name='blood requests')
    context: Dict[str, Any] = {'errors': [resource.error for resource in (requests,) if resource.error]}

    if institution.is_pmi:
        inventory = load(lambda: fetch_inventory(client, institution.id), name='blood stock')
        campaigns = load(lambda: client.get_list('/campaigns', params={'pmi_id': institution.id}), name='campaigns')
        summary = _optional_summary(client, f'/dashboard/pmi/{institution.id}/summary')
        context['metrics'] = pmi_metrics(requests.data, inventory.data, summary, campaigns.data)
        context['errors'] += [resource.error for resource in (inventory, campaigns) if resource.error]
    else:
        summary = _optional_summary(client, f'/dashboard/rs/{institution.id}/summary')
        context['metrics'] = hospital_metrics(requests.data, summary)
    return context
