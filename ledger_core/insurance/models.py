# ledger_core/insurance/models.py
from __future__ import annotations

from django.db import models

from ledger_core.common.models import UUIDModel


class CoverageStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"
    PENDING = "pending", "Pending"


class PatientCoverage(UUIDModel):
    """
    A patient's policy with an insurance provider.
    Billing only asks whether an active one exists.
    """
    patient_id = models.CharField(max_length=64, db_index=True)
    provider_name = models.CharField(max_length=255)
    policy_number = models.CharField(max_length=100)
    group_number = models.CharField(max_length=100, blank=True, default="")
    status = models.CharField(
        max_length=16,
        choices=CoverageStatus.choices,
        default=CoverageStatus.PENDING,
        db_index=True,
    )
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    class Meta:
        db_table = "insurance_patient_coverage"
        constraints = [
            models.UniqueConstraint(
                fields=["patient_id", "provider_name", "policy_number"],
                name="uq_coverage_patient_provider_policy",
            )
        ]
        indexes = [
            models.Index(fields=["patient_id", "status"]),
        ]

    def __str__(self) -> str:
        return f"{self.provider_name} {self.policy_number} ({self.status})"
