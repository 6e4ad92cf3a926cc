from django.urls import path

from . import views

urlpatterns = [
    path('', views.home_view, name='institution-home'),
    path('login/', views.login_view, name='institution-login'),
    path('register/', views.register_view, name='institution-register'),
    path('logout/', views.logout_view, name='institution-logout'),
    path('location-lookup/', views.location_lookup_view, name='institution-location-lookup'),
]
