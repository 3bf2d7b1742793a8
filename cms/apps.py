from django.apps import AppConfig


class CmsConfig(AppConfig):
    """Configuration for the content tables the interlinker reads and writes."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'cms'
