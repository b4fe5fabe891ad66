# ledger_core/insurance/tests/test_coverage.py
from datetime import date, timedelta

import pytest

from ledger_core.insurance.models import CoverageStatus, PatientCoverage
from ledger_core.insurance.selectors import active_coverages, has_active_coverage

TODAY = date(2024, 6, 15)


def _coverage(**kwargs):
    defaults = {
        "patient_id": "p-1",
        "provider_name": "Acme Health",
        "policy_number": f"POL-{PatientCoverage.objects.count() + 1}",
        "status": CoverageStatus.ACTIVE,
    }
    defaults.update(kwargs)
    return PatientCoverage.objects.create(**defaults)


@pytest.mark.django_db
def test_no_policy_means_no_coverage():
    assert has_active_coverage("p-1", on=TODAY) is False


@pytest.mark.django_db
def test_open_ended_active_policy_covers():
    _coverage()
    assert has_active_coverage("p-1", on=TODAY) is True
    assert has_active_coverage("p-2", on=TODAY) is False


@pytest.mark.django_db
@pytest.mark.parametrize("status", [CoverageStatus.INACTIVE, CoverageStatus.PENDING])
def test_non_active_policies_do_not_cover(status):
    _coverage(status=status)
    assert has_active_coverage("p-1", on=TODAY) is False


@pytest.mark.django_db
def test_policy_window_is_respected():
    _coverage(start_date=TODAY + timedelta(days=1))
    _coverage(end_date=TODAY - timedelta(days=1))
    assert has_active_coverage("p-1", on=TODAY) is False

    current = _coverage(start_date=TODAY - timedelta(days=30), end_date=TODAY)
    assert list(active_coverages(patient_id="p-1", on=TODAY)) == [current]
