# ledger_core/insurance/selectors.py
from __future__ import annotations

from datetime import date

from django.db.models import Q, QuerySet
from django.utils import timezone

from ledger_core.insurance.models import CoverageStatus, PatientCoverage


def active_coverages(*, patient_id: str, on: date | None = None) -> QuerySet[PatientCoverage]:
    """
    Active policies for a patient whose date window (when set) contains `on`.
    """
    on = on or timezone.now().date()
    return (
        PatientCoverage.objects.filter(patient_id=str(patient_id), status=CoverageStatus.ACTIVE)
        .filter(Q(start_date__isnull=True) | Q(start_date__lte=on))
        .filter(Q(end_date__isnull=True) | Q(end_date__gte=on))
        .order_by("-created_at")
    )


def has_active_coverage(patient_id: str, *, on: date | None = None) -> bool:
    return active_coverages(patient_id=patient_id, on=on).exists()
