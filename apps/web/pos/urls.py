"""
URL routing for catalog and cashier-order endpoints.
"""

from django.urls import path

from apps.web.pos import views

app_name = "pos"

urlpatterns = [
    path("outlets", views.outlets, name="outlets"),
    path("products", views.products, name="products"),
    path("orders", views.cashier_order, name="cashier-order"),
]
