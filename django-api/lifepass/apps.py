from django.apps import AppConfig


class LifepassConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "lifepass"

    def ready(self) -> None:
        from lifepass import signals  # noqa: F401
