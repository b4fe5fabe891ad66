# ledger_core/billing/numbering.py
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone as dt_timezone

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from ledger_core.billing.models import InvoiceSequence

logger = logging.getLogger(__name__)


def utc_today() -> date:
    return timezone.now().astimezone(dt_timezone.utc).date()


class InvoiceNumberAllocator:
    """
    INV-YYYYMMDD-NNNN, NNNN counted per UTC day.

    The per-day InvoiceSequence row is locked (select_for_update) and bumped
    with an F() expression inside the caller's transaction, so two concurrent
    creators serialize on the row instead of both counting the same invoices.
    """

    PREFIX = "INV"

    @staticmethod
    def format(day: date, value: int) -> str:
        return f"{InvoiceNumberAllocator.PREFIX}-{day:%Y%m%d}-{value:04d}"

    @staticmethod
    def _locked_sequence(day: date) -> InvoiceSequence:
        try:
            return InvoiceSequence.objects.select_for_update().get(pk=day)
        except InvoiceSequence.DoesNotExist:
            pass

        try:
            with transaction.atomic():
                InvoiceSequence.objects.create(day=day, last_value=0)
        except IntegrityError:
            # another creator inserted the day row first
            logger.debug("invoice sequence row for %s created concurrently", day)

        return InvoiceSequence.objects.select_for_update().get(pk=day)

    @staticmethod
    @transaction.atomic
    def allocate(*, day: date | None = None) -> str:
        day = day or utc_today()

        InvoiceNumberAllocator._locked_sequence(day)
        InvoiceSequence.objects.filter(pk=day).update(last_value=F("last_value") + 1, updated_at=timezone.now())
        value = InvoiceSequence.objects.values_list("last_value", flat=True).get(pk=day)

        number = InvoiceNumberAllocator.format(day, value)
        logger.debug("allocated invoice number %s", number)
        return number

    @staticmethod
    def peek(*, day: date | None = None) -> int:
        """
        Last value handed out for the day (0 when none).
        """
        day = day or utc_today()
        return InvoiceSequence.objects.filter(pk=day).values_list("last_value", flat=True).first() or 0


def receipt_number(*, prefix: str = "RCPT", at: datetime | None = None) -> str:
    """
    RCPT-YYYYMMDD-XXXXXXXX (INS- for insurance settlements).
    Uniqueness is enforced by the Payment.receipt_number constraint.
    """
    at = at or timezone.now()
    return f"{prefix}-{at.astimezone(dt_timezone.utc):%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"
