from django.apps import AppConfig


class NdaConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "nda"
    verbose_name = "NDA Agreements"
