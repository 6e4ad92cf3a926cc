from django.urls import path

from . import views

urlpatterns = [
    path('', views.fulfillment_list_view, name='fulfillment-list'),
    path('verify/', views.verify_code_view, name='fulfillment-verify'),
    path('verify/complete/', views.complete_donation_view, name='fulfillment-complete-donation'),
    path('<str:fulfillment_id>/', views.fulfillment_detail_view, name='fulfillment-detail'),
    path('<str:fulfillment_id>/initiate/', views.fulfillment_initiate_view, name='fulfillment-initiate'),
    path('<str:fulfillment_id>/cancel/', views.fulfillment_cancel_view, name='fulfillment-cancel'),
    path('<str:fulfillment_id>/donors/', views.fulfillment_donors_view, name='fulfillment-donors'),
    path('<str:fulfillment_id>/notify/', views.fulfillment_notify_view, name='fulfillment-notify'),
    path('<str:fulfillment_id>/stream/', views.fulfillment_stream_view, name='fulfillment-stream'),
]
