# ledger_core/billing/apps.py
from __future__ import annotations

from django.apps import AppConfig


class BillingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "ledger_core.billing"

    def ready(self) -> None:
        # registers notification + audit subscribers on the event bus
        from ledger_core.billing import subscribers  # noqa: F401
