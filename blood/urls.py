from django.urls import path

from . import views

urlpatterns = [
    path('requests/', views.request_list_view, name='blood-requests'),
    path('requests/new/', views.request_create_view, name='blood-request-create'),
    path('requests/<str:request_id>/approve/', views.request_approve_view, name='blood-request-approve'),
    path('requests/<str:request_id>/reject/', views.request_reject_view, name='blood-request-reject'),
    path('requests/<str:request_id>/pickup/', views.pickup_create_view, name='blood-pickup-create'),
    path('requests/<str:request_id>/allocations/', views.allocation_detail_view, name='blood-allocations'),
    path('requests/<str:request_id>/allocations/<str:allocation_id>/pickup/', views.allocation_pickup_view, name='blood-allocation-pickup'),
    path('requests/<str:request_id>/allocations/<str:allocation_id>/cancel/', views.allocation_cancel_view, name='blood-allocation-cancel'),
    path('campaigns/new/', views.campaign_create_view, name='blood-campaign-create'),

    path('pickups/', views.pickup_list_view, name='blood-pickups'),
    path('pickups/<str:pickup_id>/complete/', views.pickup_complete_view, name='blood-pickup-complete'),

    path('stock/', views.stock_view, name='blood-stock'),
    path('stock/history/', views.stock_history_view, name='blood-stock-history'),
    path('partners/', views.partner_list_view, name='blood-partners'),
]
