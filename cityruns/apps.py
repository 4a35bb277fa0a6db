from django.apps import AppConfig


class CityRunsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'cityruns'
    verbose_name = "City Runs"
