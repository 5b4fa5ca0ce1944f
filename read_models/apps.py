from django.apps import AppConfig


class ReadModelsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'read_models'
    verbose_name = 'Wallet Read Projections'
