from django.apps import AppConfig


class InterlinksConfig(AppConfig):
    """Configuration for the auto-interlinking app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'interlinks'

    def ready(self) -> None:
        from . import signals  # noqa: F401
