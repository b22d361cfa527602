"""Django app configuration for online orders."""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """Online orders app configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.orders"
    verbose_name = "Online Orders"
