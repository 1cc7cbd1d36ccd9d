from django.apps import AppConfig


class PayablesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "payables"

    # ensure receivers are registered
    def ready(self):
        from . import signals  # noqa: F401
