"""institutionportal URL Configuration

Each app owns its routes; the landing page is the role-aware dashboard.
"""
from django.urls import include, path

urlpatterns = [
    path('', include('institution.urls')),
    path('blood/', include('blood.urls')),
    path('fulfillment/', include('fulfillment.urls')),
    path('notifications/', include('notification.urls')),
]
