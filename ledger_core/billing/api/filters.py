# ledger_core/billing/api/filters.py
from __future__ import annotations

import django_filters

from ledger_core.billing.models import ClaimStatus, Invoice, InvoiceStatus


class InvoiceFilter(django_filters.FilterSet):
    patient = django_filters.CharFilter(field_name="patient_id")
    doctor = django_filters.CharFilter(field_name="doctor_id")
    status = django_filters.MultipleChoiceFilter(choices=InvoiceStatus.choices)
    claim_status = django_filters.ChoiceFilter(choices=ClaimStatus.choices)
    due_before = django_filters.IsoDateTimeFilter(field_name="due_date", lookup_expr="lt")
    created_after = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Invoice
        fields = ["patient", "doctor", "status", "claim_status"]
