from django.apps import AppConfig


class MarketplaceConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'marketplace'

    def ready(self) -> None:
        """
        Register the marketplace signal handlers that open conversations for accepted applications.
        """
        import marketplace.signals  # noqa: F401
