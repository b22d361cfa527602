"""
URL routing for online-payment order endpoints.
"""

from django.urls import path

from apps.web.orders import views

app_name = "orders"

urlpatterns = [
    path(
        "create-transaction",
        views.create_transaction,
        name="create-transaction",
    ),
    path("record", views.record_payment, name="record"),
    path("status", views.payment_status, name="status"),
]
