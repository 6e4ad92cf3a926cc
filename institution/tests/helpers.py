from unittest.mock import patch

from django.urls import reverse

from institution.session import InstitutionSession


def make_session(institution_type='pmi', **overrides):
    values = {
        'id': 'inst-1' if institution_type == 'pmi' else 'hosp-1',
        'institution_type': institution_type,
        'institution_name': 'PMI Jakarta Pusat' if institution_type == 'pmi' else 'RS Cipto',
        'email': f'{institution_type}@example.com',
        'token': 'token-123',
    }
    values.update(overrides)
    return InstitutionSession(**values)


def login_as(client, institution_type='pmi', **overrides):
    """Log the test client in through the real login view with the API call stubbed."""

    session = make_session(institution_type, **overrides)
    with patch('institution.views.auth.login', return_value=session):
        response = client.post(reverse('institution-login'), {'email': session.email, 'password': 'secret1'})
    assert response.status_code == 302, response
    return session
