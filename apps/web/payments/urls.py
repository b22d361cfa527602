"""
URL routing for payment gateway callbacks.
"""

from django.urls import path

from apps.web.payments import webhooks

app_name = "payments"

urlpatterns = [
    path(
        "notification",
        webhooks.midtrans_notification,
        name="midtrans-notification",
    ),
]
