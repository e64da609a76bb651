from django.apps import AppConfig


class ContractsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.contracts"

    def ready(self) -> None:  # pragma: no cover - import side effects
        from . import handlers  # noqa: F401
