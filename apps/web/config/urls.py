"""
URL configuration for the Storefront.
"""

from django.urls import include, path

urlpatterns = [
    # Public API endpoints
    path("api/payment/", include("apps.web.orders.urls")),
    path("api/payment/", include("apps.web.payments.urls")),
    path("api/", include("apps.web.pos.urls")),
]
