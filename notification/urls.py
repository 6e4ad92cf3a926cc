from django.urls import path

from . import views

urlpatterns = [
    path('', views.notification_list_view, name='notification-list'),
    path('read-all/', views.mark_all_read_view, name='notification-read-all'),
    path('bell/', views.bell_view, name='notification-bell'),
    path('stream/', views.notification_stream_view, name='notification-stream'),
    path('<str:notification_id>/read/', views.mark_read_view, name='notification-read'),
]
