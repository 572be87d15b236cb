"""Partners app configuration."""
from django.apps import AppConfig


class PartnersConfig(AppConfig):
    """Configuration for partners app."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.partners'
    verbose_name = 'Partners'
