"""Django app configuration for the point-of-sale integration."""

from django.apps import AppConfig


class PosConfig(AppConfig):
    """Catalog and cashier-order app configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.pos"
    verbose_name = "Moka POS Integration"
