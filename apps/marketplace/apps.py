from django.apps import AppConfig


class MarketplaceConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.marketplace'
    label = 'marketplace'
    verbose_name = 'Marketplace'

    def ready(self):
        # Connect order_transitioned receivers
        from . import signals  # noqa: F401
