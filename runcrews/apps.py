from django.apps import AppConfig


class RunCrewsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'runcrews'
    verbose_name = "Run Crews"
