from django.apps import AppConfig


class AssetConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "asset"
    verbose_name = "Asset inventory"
