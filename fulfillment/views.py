import logging
import queue

from django.conf import settings
from django.contrib import messages
from django.shortcuts import redirect, render
from django.views.decorators.http import require_POST

from blood.constants import INSTITUTION_PMI
from blood.services.api import ApiError
from blood.services.resources import RemoteResource
from blood.utils.sse import event_stream, sse_response
from institution.session import institution_required

from . import forms
from .services.client import FulfillmentApi
from .services.progress import fulfillment_progress
from .services.ranking import DonorSelection, filter_by_radius
from .services.records import FulfillmentStats
from .services.store import FulfillmentStore

logger = logging.getLogger(__name__)


def _store(request) -> FulfillmentStore:
    return FulfillmentStore(FulfillmentApi(request.institution.api_client()))


@institution_required
def fulfillment_list_view(request):
    institution = request.institution
    store = _store(request)
    form = forms.FulfillmentFilterForm(request.GET or None)
    filters = {key: value for key, value in (form.cleaned_data if form.is_valid() else {}).items() if value}
    if institution.is_pmi:
        filters['pmi_id'] = institution.id
    filters.setdefault('limit', getattr(settings, 'REQUESTS_PER_PAGE', 10))
    store.fetch_fulfillments(**filters)

    stats = RemoteResource(
        lambda: store.api.get_stats(institution.id if institution.is_pmi else None),
        empty=FulfillmentStats,
        name='fulfillment stats',
    ).refetch()

    context = {
        'fulfillments': store.fulfillments,
        'pagination': store.pagination,
        'error': store.error,
        'stats': stats.data,
        'form': form,
    }
    return render(request, 'fulfillment/list.html', context)


@institution_required
def fulfillment_detail_view(request, fulfillment_id):
    store = _store(request)
    fulfillment = store.load_detail(fulfillment_id)
    if fulfillment is None:
        messages.error(request, store.error or 'Fulfillment not found.')
        return redirect('fulfillment-list')
    context = {
        'fulfillment': fulfillment,
        'confirmations': store.confirmations,
        'progress': store.progress,
        'error': store.error,
        'cancel_form': forms.CancelFulfillmentForm(),
    }
    return render(request, 'fulfillment/detail.html', context)


@require_POST
@institution_required(role=INSTITUTION_PMI)
def fulfillment_initiate_view(request, fulfillment_id):
    store = _store(request)
    if store.initiate(fulfillment_id):
        messages.success(request, 'Donor search started.')
    else:
        messages.error(request, store.error)
    return redirect('fulfillment-detail', fulfillment_id=fulfillment_id)


@require_POST
@institution_required(role=INSTITUTION_PMI)
def fulfillment_cancel_view(request, fulfillment_id):
    store = _store(request)
    form = forms.CancelFulfillmentForm(request.POST)
    if not form.is_valid():
        messages.error(request, 'Please give a cancellation reason.')
        return redirect('fulfillment-detail', fulfillment_id=fulfillment_id)
    fulfillment = store.fetch_fulfillment(fulfillment_id)
    if fulfillment is None:
        messages.error(request, store.error)
    elif store.cancel(fulfillment, form.cleaned_data['reason']):
        messages.success(request, 'Fulfillment cancelled.')
    else:
        messages.error(request, store.error)
    return redirect('fulfillment-detail', fulfillment_id=fulfillment_id)


@institution_required(role=INSTITUTION_PMI)
def fulfillment_donors_view(request, fulfillment_id):
    store = _store(request)
    search_form = forms.DonorSearchForm(request.GET or None)
    radius = search_form.cleaned_data.get('radius_km') if search_form.is_valid() else None
    donors = filter_by_radius(store.search_donors(fulfillment_id), radius)
    selection = DonorSelection(donors)
    if request.GET.get('select') == 'all':
        selection.select_all()

    context = {
        'fulfillment_id': fulfillment_id,
        'donors': donors,
        'selection': selection,
        'error': store.error,
        'search_form': search_form,
        'notify_form': forms.SendNotificationsForm(donors=donors, initial={'donor_ids': sorted(selection.selected)}),
    }
    return render(request, 'fulfillment/donors.html', context)


@require_POST
@institution_required(role=INSTITUTION_PMI)
def fulfillment_notify_view(request, fulfillment_id):
    store = _store(request)
    donors = store.search_donors(fulfillment_id)
    form = forms.SendNotificationsForm(request.POST, donors=donors)
    if not form.is_valid():
        for error in form.errors.get('donor_ids', []):
            messages.error(request, error)
        return redirect('fulfillment-donors', fulfillment_id=fulfillment_id)

    selection = DonorSelection(donors)
    selection.restrict(form.cleaned_data['donor_ids'])
    fulfillment = store.fetch_fulfillment(fulfillment_id)
    if fulfillment is None:
        messages.error(request, store.error)
        return redirect('fulfillment-donors', fulfillment_id=fulfillment_id)
    try:
        notified = store.api.send_notifications(fulfillment.campaign_id or fulfillment.id, fulfillment.id, selection.count)
    except ApiError as exc:
        messages.error(request, exc.message)
        return redirect('fulfillment-donors', fulfillment_id=fulfillment_id)
    messages.success(request, f'Notifications sent to {notified} donors.')
    return redirect('fulfillment-detail', fulfillment_id=fulfillment_id)


def _verified_donor(verified):
    """Donor name and blood type from a verify-code payload, whichever level carries them."""

    confirmation = verified.get('confirmation') or {}
    donor = confirmation.get('donor') or confirmation.get('donors') or verified.get('donor') or {}
    name = donor.get('full_name') or confirmation.get('donor_name') or verified.get('donor_name') or ''
    blood_type = donor.get('blood_type') or verified.get('blood_type') or ''
    return name, blood_type


@institution_required(role=INSTITUTION_PMI)
def verify_code_view(request):
    """Step one of a walk-in donation: look the donor up by their confirmation code."""

    store = _store(request)
    form = forms.VerifyCodeForm(request.POST or None)
    verified = None
    complete_form = None
    donor_name, donor_blood_type = '', ''
    if request.method == 'POST' and form.is_valid():
        try:
            verified = store.verify_code(form.cleaned_data['unique_code'], request.institution.id)
        except ApiError as exc:
            form.add_error('unique_code', exc.message)
        else:
            confirmation = verified.get('confirmation') or verified
            complete_form = forms.CompleteDonationForm(initial={'confirmation_id': confirmation.get('id') or verified.get('confirmation_id')})
            donor_name, donor_blood_type = _verified_donor(verified)
    context = {
        'form': form,
        'verified': verified,
        'complete_form': complete_form,
        'donor_name': donor_name,
        'donor_blood_type': donor_blood_type,
    }
    return render(request, 'fulfillment/verify.html', context)


@require_POST
@institution_required(role=INSTITUTION_PMI)
def complete_donation_view(request):
    store = _store(request)
    form = forms.CompleteDonationForm(request.POST)
    if not form.is_valid():
        messages.error(request, 'Check the donation details and try again.')
        return redirect('fulfillment-verify')
    data = form.cleaned_data
    try:
        result = store.complete_donation(
            confirmation_id=data['confirmation_id'],
            pmi_id=request.institution.id,
            quantity=data['quantity'],
            notes=data.get('notes') or '',
            medical_notes=data.get('medical_notes') or '',
            health_screening=form.health_screening(),
        )
    except ApiError as exc:
        messages.error(request, exc.message)
    else:
        messages.success(request, result.message or 'Donation recorded.')
    return redirect('fulfillment-verify')


@institution_required
def fulfillment_stream_view(request, fulfillment_id):
    """Push a progress snapshot every poll until the campaign ends or the client leaves."""

    api = FulfillmentApi(request.institution.api_client())
    events = queue.Queue()

    def on_snapshot(fulfillment):
        events.put(('progress', fulfillment_progress(fulfillment).as_dict()))
        if fulfillment.is_terminal:
            events.put(None)

    unsubscribe = api.subscribe_fulfillment(fulfillment_id, on_snapshot)
    stream = event_stream(
        events,
        heartbeat=getattr(settings, 'NOTIFICATION_STREAM_HEARTBEAT', 15),
        on_close=unsubscribe,
    )
    return sse_response(stream)
