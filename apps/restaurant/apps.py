"""
Restaurant app configuration.
"""

from django.apps import AppConfig


class RestaurantConfig(AppConfig):
    """Tables, kitchen orders and order checkout for restaurants and cafes."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.restaurant"
    verbose_name = "Restaurant"
