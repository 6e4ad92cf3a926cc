import logging
import queue

from django.conf import settings
from django.contrib import messages
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_GET, require_POST

from blood.utils.sse import event_stream, sse_response
from institution.session import institution_required

from .forms import NotificationFilterForm
from .services.client import NotificationApi
from .services.feed import EVENT_UNREAD, NotificationFeed, PollingChangeFeed

logger = logging.getLogger(__name__)

TYPE_ICONS = {
    'donation': 'tint',
    'pickup': 'truck',
    'stock': 'boxes',
    'campaign': 'bullhorn',
    'request': 'file-medical',
    'system': 'info-circle',
}


def _feed(request, **kwargs) -> NotificationFeed:
    return NotificationFeed(request.institution.id, NotificationApi(), **kwargs)


def _wants_json(request) -> bool:
    return 'application/json' in request.headers.get('Accept', '')


@institution_required
def notification_list_view(request):
    feed = _feed(request)
    feed.load()
    form = NotificationFilterForm(request.GET or None)
    context = {
        'notifications': form.apply(feed.notifications),
        'unread_count': feed.unread_count,
        'total_count': len(feed.notifications),
        'error': feed.error,
        'form': form,
        'type_icons': TYPE_ICONS,
    }
    return render(request, 'notification/list.html', context)


@require_POST
@institution_required
def mark_read_view(request, notification_id):
    feed = _feed(request)
    ok = feed.mark_as_read(notification_id)
    if _wants_json(request):
        return JsonResponse({'success': ok, 'message': feed.error or ''}, status=200 if ok else 502)
    if not ok:
        messages.error(request, feed.error)
    next_url = request.POST.get('next')
    if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        return redirect(next_url)
    return redirect('notification-list')


@require_POST
@institution_required
def mark_all_read_view(request):
    feed = _feed(request)
    feed.load()
    ok = feed.mark_all_as_read()
    if _wants_json(request):
        return JsonResponse({'success': ok, 'message': feed.error or ''}, status=200 if ok else 502)
    if ok:
        messages.success(request, 'All notifications marked as read.')
    else:
        messages.error(request, feed.error)
    return redirect('notification-list')


@require_GET
@institution_required
def bell_view(request):
    feed = _feed(request)
    feed.load()
    feed.refresh_unread_count()
    return JsonResponse({
        'unread_count': feed.unread_count,
        'latest': [item.as_dict() for item in feed.notifications[:5]],
        'error': feed.error,
    })


@require_GET
@institution_required
def notification_stream_view(request):
    """Live inserts/updates for the bell as ``text/event-stream``."""

    events = queue.Queue()
    feed = None

    def on_change(event, notification):
        payload = {'unread_count': feed.unread_count}
        if notification is not None:
            payload['notification'] = notification.as_dict()
        events.put((event, payload))

    api = NotificationApi()
    feed = NotificationFeed(request.institution.id, api, PollingChangeFeed(api), on_change=on_change)
    feed.start()
    stream = event_stream(
        events,
        heartbeat=getattr(settings, 'NOTIFICATION_STREAM_HEARTBEAT', 15),
        on_close=feed.stop,
        initial=[(EVENT_UNREAD, {'unread_count': feed.unread_count})],
    )
    return sse_response(stream)
