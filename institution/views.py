import logging

from django.contrib import messages
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET

from blood.services.api import ApiError

from . import forms
from .services import auth
from .services.dashboard import load_dashboard
from .services.geocoding import reverse_lookup, search_address
from .session import InstitutionSession, institution_required

logger = logging.getLogger(__name__)


def login_view(request):
    if InstitutionSession.from_request(request):
        return redirect('institution-home')

    form = forms.LoginForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        try:
            session = auth.login(form.cleaned_data['email'], form.cleaned_data['password'])
        except ApiError as exc:
            form.add_error(None, exc.message)
        else:
            session.start(request)
            messages.success(request, f'Welcome back, {session.institution_name}.')
            return redirect('institution-home')
    return render(request, 'institution/login.html', {'form': form})


def register_view(request):
    form = forms.RegisterForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        try:
            result = auth.register(form.cleaned_data)
        except ApiError as exc:
            form.add_error(None, exc.message)
        else:
            messages.success(request, result.message or 'Registration successful. Please log in.')
            return redirect('institution-login')
    return render(request, 'institution/register.html', {'form': form})


def logout_view(request):
    InstitutionSession.end(request)
    return redirect('institution-login')


@institution_required
def home_view(request):
    context = load_dashboard(request.institution)
    template = 'institution/dashboard_pmi.html' if request.institution.is_pmi else 'institution/dashboard_hospital.html'
    return render(request, template, context)


@require_GET
def location_lookup_view(request):
    """JSON backing the registration map: ``?q=`` searches, ``?lat=&lon=`` reverses."""

    query = request.GET.get('q', '')
    if query:
        results = search_address(query)
    else:
        try:
            found = reverse_lookup(request.GET['lat'], request.GET['lon'])
        except (KeyError, ArithmeticError, ValueError):
            return JsonResponse({'results': [], 'error': 'Provide q, or lat and lon.'}, status=400)
        results = [found] if found else []
    return JsonResponse({
        'results': [
            {'latitude': str(item.latitude), 'longitude': str(item.longitude), 'display_name': item.display_name}
            for item in results
        ]
    })
