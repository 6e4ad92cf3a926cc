from unittest.mock import patch

from django.test import TestCase, override_settings
from django.urls import reverse

from blood.services.api import ApiValidationError, MutationResult
from institution.services.dashboard import pmi_metrics
from institution.session import SESSION_KEY
from institution.tests.helpers import login_as


class LoginViewTests(TestCase):
    @patch('institution.views.auth.login', side_effect=ApiValidationError('Invalid credentials'))
    def test_bad_credentials_stay_on_page(self, login):
        response = self.client.post(reverse('institution-login'), {'email': 'rs@example.com', 'password': 'nope'})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Invalid credentials')
        self.assertNotIn(SESSION_KEY, self.client.session)

    def test_login_stores_institution(self):
        session = login_as(self.client, 'hospital')
        self.assertEqual(self.client.session[SESSION_KEY]['id'], session.id)

    def test_logout_clears_session(self):
        login_as(self.client, 'pmi')
        response = self.client.get(reverse('institution-logout'))
        self.assertRedirects(response, reverse('institution-login'), fetch_redirect_response=False)
        self.assertNotIn(SESSION_KEY, self.client.session)


@override_settings(GEOCODER_ALLOW_REMOTE=False)
class RegisterViewTests(TestCase):
    @patch('institution.views.auth.register', return_value=MutationResult(True, 'Registered'))
    def test_register_redirects_to_login(self, register):
        response = self.client.post(reverse('institution-register'), {
            'institution_type': 'hospital',
            'institution_name': 'RS Cipto',
            'email': 'rs@example.com',
            'password': 'secret1',
            'location_query': 'Monas, Jakarta',
        })
        self.assertRedirects(response, reverse('institution-login'), fetch_redirect_response=False)
        self.assertEqual(register.call_args[0][0]['address'], 'Monas, Jakarta')


class HomeViewTests(TestCase):
    @patch('institution.views.load_dashboard')
    def test_template_follows_institution_type(self, load_dashboard):
        load_dashboard.return_value = {'errors': [], 'metrics': pmi_metrics([], [])}
        login_as(self.client, 'pmi')
        response = self.client.get(reverse('institution-home'))
        self.assertTemplateUsed(response, 'institution/dashboard_pmi.html')

    def test_anonymous_redirected(self):
        response = self.client.get(reverse('institution-home'))
        self.assertRedirects(response, reverse('institution-login'), fetch_redirect_response=False)


@override_settings(GEOCODER_ALLOW_REMOTE=False)
class LocationLookupViewTests(TestCase):
    def test_search_fixture(self):
        response = self.client.get(reverse('institution-location-lookup'), {'q': 'monas, jakarta'})
        self.assertEqual(response.json()['results'][0]['latitude'], '-6.175392')

    def test_missing_parameters(self):
        response = self.client.get(reverse('institution-location-lookup'))
        self.assertEqual(response.status_code, 400)
