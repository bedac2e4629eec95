from django.apps import AppConfig
from django.conf import settings
from django.utils.module_loading import autodiscover_modules


class FieldProjectionConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "field_projection"

    def ready(self):
        if getattr(settings, 'FIELD_PROJECTION_AUTODISCOVER', True):
            autodiscover_modules('serializers')
        if getattr(settings, 'FIELD_PROJECTION_VALIDATE_ON_READY', True):
            from field_projection.serializers import validate_registered
            validate_registered()
