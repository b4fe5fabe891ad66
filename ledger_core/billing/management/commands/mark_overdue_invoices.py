# ledger_core/billing/management/commands/mark_overdue_invoices.py
from __future__ import annotations

from django.core.management.base import BaseCommand
from django.utils.timezone import now

from ledger_core.billing.selectors import overdue_invoices
from ledger_core.billing.services import InvoiceService
from ledger_core.common.api.exceptions import ConflictError, InvalidStateError


class Command(BaseCommand):
    help = "Flag issued / partially paid invoices whose due date has passed as overdue. Meant to be run from cron."

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="Print counts only; do not write.")
        parser.add_argument("--limit", type=int, default=None, help="Optional limit of invoices scanned.")

    def handle(self, *args, **opts):
        dry = opts["dry_run"]
        scan_at = now()

        qs = overdue_invoices(now=scan_at)
        if opts["limit"]:
            qs = qs[: opts["limit"]]

        ids = list(qs.values_list("id", flat=True))
        marked = 0
        skipped = 0

        if not dry:
            for invoice_id in ids:
                try:
                    InvoiceService.mark_overdue(invoice_id=invoice_id, now=scan_at)
                except (InvalidStateError, ConflictError) as exc:
                    # paid or cancelled between the scan and the write
                    skipped += 1
                    self.stderr.write(f"Skipped {invoice_id}: {exc.detail}")
                else:
                    marked += 1

        self.stdout.write(f"Invoices examined: {len(ids)}")
        if dry:
            self.stdout.write(f"DRY RUN: invoices that would be marked overdue: {len(ids)}")
        else:
            self.stdout.write(f"Invoices marked overdue: {marked}")
            self.stdout.write(f"Invoices skipped: {skipped}")
