from django.apps import AppConfig

class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = "Athletes & Integrations"

    def ready(self):
        # Registers the OAuth providers (Garmin) in the provider registry.
        import core.providers  # noqa: F401
