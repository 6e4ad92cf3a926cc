import logging
from dataclasses import replace

from django.conf import settings
from django.contrib import messages
from django.shortcuts import redirect, render
from django.views.decorators.http import require_POST

from blood.constants import INSTITUTION_HOSPITAL, INSTITUTION_PMI
from fulfillment.services.client import FulfillmentApi
from institution.session import institution_required

from . import forms
from .services import blood_requests, pickups, stock
from .services.allocation import PickupPlan, QuantityExceedsAvailable
from .services.api import ApiError
from .services.resources import RemoteResource, load
from .utils.pagination import paginate

logger = logging.getLogger(__name__)


@institution_required
def request_list_view(request):
    institution = request.institution
    client = institution.api_client()
    resource = load(lambda: blood_requests.list_requests(client, institution), name='blood requests')

    filter_form = forms.RequestFilterForm(request.GET or None)
    rows = resource.data
    if filter_form.is_valid():
        rows = blood_requests.filter_requests(
            rows,
            blood_type=filter_form.cleaned_data.get('blood_type'),
            location=filter_form.cleaned_data.get('location'),
            on_date=filter_form.cleaned_data.get('date'),
        )
    rows = sorted(rows, key=lambda row: row.get('created_at') or '', reverse=True)
    page = paginate(rows, request.GET.get('page'), getattr(settings, 'REQUESTS_PER_PAGE', 10))
    if institution.is_pmi:
        page = replace(page, items=blood_requests.annotate_readiness(client, page.items))

    context = {
        'page': page,
        'filter_form': filter_form,
        'error': resource.error,
        'reject_form': forms.RejectRequestForm(),
    }
    return render(request, 'blood/request_list.html', context)


@institution_required(role=INSTITUTION_HOSPITAL)
def request_create_view(request):
    client = request.institution.api_client()
    partners = load(lambda: blood_requests.list_partners(client), name='partners')
    form = forms.BloodRequestForm(request.POST or None, partners=partners.data)
    if request.method == 'POST' and form.is_valid():
        try:
            result = blood_requests.create_request(client, request.institution.id, form.cleaned_data)
        except ApiError as exc:
            messages.error(request, exc.message)
        else:
            messages.success(request, result.message or 'Blood request sent.')
            return redirect('blood-requests')
    return render(request, 'blood/request_form.html', {'form': form, 'partners_error': partners.error})


@require_POST
@institution_required(role=INSTITUTION_PMI)
def request_approve_view(request, request_id):
    try:
        result = blood_requests.approve_request(request.institution.api_client(), request_id)
    except ApiError as exc:
        messages.error(request, exc.message)
    else:
        messages.success(request, result.message or 'Request approved.')
    return redirect('blood-requests')


@require_POST
@institution_required(role=INSTITUTION_PMI)
def request_reject_view(request, request_id):
    form = forms.RejectRequestForm(request.POST)
    if not form.is_valid():
        messages.error(request, 'Please give a reason for rejecting this request.')
        return redirect('blood-requests')
    try:
        result = blood_requests.reject_request(request.institution.api_client(), request_id, form.cleaned_data['rejection_reason'])
    except ApiError as exc:
        messages.error(request, exc.message)
    else:
        messages.success(request, result.message or 'Request rejected.')
    return redirect('blood-requests')


def _apply_manual_quantities(plan, data, form):
    """Copy the per-batch inputs into ``plan``; ceiling violations become form errors."""

    for batch in plan.allocations:
        try:
            plan.set_allocation_quantity(batch.allocation_id, data.get(f'allocation_{batch.allocation_id}') or 0)
        except QuantityExceedsAvailable as exc:
            form.add_error(None, str(exc))
    for batch in plan.free_stock:
        try:
            plan.set_free_stock_quantity(batch.stock_id, data.get(f'free_stock_{batch.stock_id}') or 0)
        except QuantityExceedsAvailable as exc:
            form.add_error(None, str(exc))


@institution_required(role=INSTITUTION_PMI)
def pickup_create_view(request, request_id):
    client = request.institution.api_client()
    snapshot_resource = RemoteResource(
        lambda: blood_requests.fetch_allocation_snapshot(client, request_id),
        empty=lambda: None,
        name='allocations',
    ).refetch()
    if snapshot_resource.error:
        messages.error(request, snapshot_resource.error)
        return redirect('blood-requests')

    snapshot = snapshot_resource.data
    default_quantity = max(snapshot.summary.total_needed, 0)
    try:
        quantity_needed = int(request.GET.get('quantity') or default_quantity)
    except ValueError:
        quantity_needed = default_quantity
    if quantity_needed < 1:
        quantity_needed = default_quantity
    plan = PickupPlan(quantity_needed, snapshot.allocations, snapshot.free_stock)

    form = forms.PickupScheduleForm(request.POST or None)
    if request.method == 'POST':
        _apply_manual_quantities(plan, request.POST, form)
        if form.is_valid():
            data = form.cleaned_data
            if not plan.can_submit(data['pickup_date'], data['pickup_time']):
                form.add_error(None, f'Selected {plan.total_selected} of {plan.quantity_needed} units needed.')
            else:
                try:
                    result = blood_requests.confirm_pickup(
                        client,
                        request_id,
                        plan,
                        data['pickup_date'].isoformat(),
                        data['pickup_time'].strftime('%H:%M'),
                        data.get('notes') or '',
                    )
                except ApiError as exc:
                    messages.error(request, exc.message)
                else:
                    messages.success(request, result.message or 'Pickup scheduled.')
                    return redirect('blood-pickups')
    else:
        plan.auto_fill()

    context = {
        'request_id': request_id,
        'plan': plan,
        'summary': snapshot.summary,
        'form': form,
    }
    return render(request, 'blood/pickup_form.html', context)


@require_POST
@institution_required(role=INSTITUTION_PMI)
def campaign_create_view(request):
    form = forms.CampaignForm(request.POST)
    if not form.is_valid():
        messages.error(request, 'The request details are incomplete; reload the page and try again.')
        return redirect('blood-requests')
    data = form.cleaned_data
    api = FulfillmentApi(request.institution.api_client())
    try:
        fulfillment_id = api.search_and_create(
            blood_request_id=data['blood_request_id'],
            pmi_id=request.institution.id,
            patient_name=data['patient_name'],
            blood_type=data['blood_type'],
            quantity_needed=data['quantity'],
            urgency_level=data.get('urgency_level') or 'medium',
        )
    except ApiError as exc:
        messages.error(request, exc.message)
        return redirect('blood-requests')
    messages.success(request, 'Donor campaign created. Review the matched donors below.')
    return redirect('fulfillment-donors', fulfillment_id=fulfillment_id)


@institution_required(role=INSTITUTION_PMI)
def allocation_detail_view(request, request_id):
    client = request.institution.api_client()
    context = {
        'request_id': request_id,
        'available': RemoteResource(lambda: blood_requests.fetch_available_allocations(client, request_id), empty=lambda: None, name='available allocations').refetch(),
        'history': load(lambda: blood_requests.allocation_history(client, request_id), name='allocation history'),
        'pending': load(lambda: blood_requests.pending_pickups(client, request_id), name='pending pickups'),
        'pickup_form': forms.AllocationPickupForm(),
        'cancel_form': forms.AllocationCancelForm(),
    }
    return render(request, 'blood/allocation_detail.html', context)


@require_POST
@institution_required(role=INSTITUTION_PMI)
def allocation_pickup_view(request, request_id, allocation_id):
    form = forms.AllocationPickupForm(request.POST)
    if form.is_valid():
        try:
            result = blood_requests.confirm_allocation_pickup(request.institution.api_client(), allocation_id, form.cleaned_data['quantity_picked_up'])
        except ApiError as exc:
            messages.error(request, exc.message)
        else:
            messages.success(request, result.message or 'Pickup confirmed.')
    else:
        messages.error(request, 'Enter a pickup quantity of at least 1.')
    return redirect('blood-allocations', request_id=request_id)


@require_POST
@institution_required(role=INSTITUTION_PMI)
def allocation_cancel_view(request, request_id, allocation_id):
    form = forms.AllocationCancelForm(request.POST)
    if form.is_valid():
        try:
            result = blood_requests.cancel_allocation(request.institution.api_client(), allocation_id, form.cleaned_data['reason'])
        except ApiError as exc:
            messages.error(request, exc.message)
        else:
            messages.success(request, result.message or 'Allocation cancelled.')
    else:
        messages.error(request, 'A cancellation reason is required.')
    return redirect('blood-allocations', request_id=request_id)


@institution_required
def pickup_list_view(request):
    client = request.institution.api_client()
    filter_form = forms.PickupFilterForm(request.GET or None)
    status = filter_form.cleaned_data.get('status') if filter_form.is_valid() else 'all'
    resource = load(lambda: pickups.list_pickups(client, request.institution.id, status or 'all'), name='pickups')
    context = {
        'pickups': resource.data,
        'error': resource.error,
        'filter_form': filter_form,
        'complete_form': forms.PickupCompleteForm(),
    }
    return render(request, 'blood/pickup_list.html', context)


@require_POST
@institution_required
def pickup_complete_view(request, pickup_id):
    form = forms.PickupCompleteForm(request.POST)
    if not form.is_valid():
        for error in form.errors.get('unique_code', []):
            messages.error(request, error)
        return redirect('blood-pickups')
    try:
        result = pickups.complete_pickup(request.institution.api_client(), pickup_id, form.cleaned_data['unique_code'])
    except ApiError as exc:
        messages.error(request, exc.message)
    else:
        messages.success(request, result.message or 'Pickup completed.')
    return redirect('blood-pickups')


@institution_required(role=INSTITUTION_PMI)
def stock_view(request):
    institution = request.institution
    client = institution.api_client()
    resource = load(lambda: stock.fetch_stock(client, institution.id), empty=lambda: stock.complete_stocks(None), name='blood stock')

    form = forms.StockAdjustForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        data = form.cleaned_data
        current = next((row['quantity'] for row in resource.data if row['blood_type'] == data['blood_type']), 0)
        try:
            result = stock.adjust_stock(
                client,
                institution.id,
                blood_type=data['blood_type'],
                change_type=data['change_type'],
                quantity=data['quantity'],
                current=current,
                notes=data.get('notes') or '',
            )
        except stock.StockAdjustmentError as exc:
            form.add_error('quantity', str(exc))
        except ApiError as exc:
            messages.error(request, exc.message)
        else:
            messages.success(request, result.message or f"Stock {data['blood_type']} updated.")
            return redirect('blood-stock')

    context = {
        'stocks': resource.data,
        'error': resource.error,
        'form': form,
        'total_units': sum(row['quantity'] for row in resource.data),
    }
    return render(request, 'blood/stock.html', context)


@institution_required(role=INSTITUTION_PMI)
def stock_history_view(request):
    institution = request.institution
    client = institution.api_client()
    form = forms.StockHistoryFilterForm(request.GET or None)
    filters = form.cleaned_data if form.is_valid() else {}
    history = load(
        lambda: stock.stock_history(
            client,
            institution.id,
            action_type=filters.get('action_type'),
            blood_type=filters.get('blood_type'),
            start_date=filters.get('start_date'),
            end_date=filters.get('end_date'),
        ),
        name='stock history',
    )
    stats = load(lambda: stock.stock_history_stats(client, institution.id), empty=dict, name='stock stats')
    return render(request, 'blood/stock_history.html', {'form': form, 'history': history, 'stats': stats})


@institution_required(role=INSTITUTION_HOSPITAL)
def partner_list_view(request):
    client = request.institution.api_client()
    resource = load(lambda: blood_requests.list_partners(client), name='partners')
    partners = [
        {'partner': partner, 'stocks': stock.complete_stocks(partner.blood_stock)}
        for partner in resource.data
    ]
    return render(request, 'blood/partner_list.html', {'partners': partners, 'error': resource.error})
