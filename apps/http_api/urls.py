from django.urls import path

from apps.webhooks.views import booking_webhook

urlpatterns = [
    path('api/webhooks/booking', booking_webhook, name='booking-webhook'),
]
