# fees/apps.py

from django.apps import AppConfig


class FeesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "fees"
    verbose_name = "Fee Ledger"

    def ready(self):
        """
        Connect the fee-structure cache invalidation receiver.
        """
        import fees.signals  # noqa: F401
