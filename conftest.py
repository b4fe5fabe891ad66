# conftest.py
from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.utils import timezone
from rest_framework.test import APIClient

from ledger_core.billing.services import InvoiceService, PaymentService
from ledger_core.billing.tests.factories import DOCTOR_ID, PATIENT_ID, consultation_items


@pytest.fixture
def user(db):
    User = get_user_model()
    user = User.objects.create_user(
        username="billing-clerk",
        password="testpass",
        is_active=True,
    )
    group, _ = Group.objects.get_or_create(name="BILLING")
    user.groups.add(group)
    return user


@pytest.fixture
def api_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def make_invoice(db):
    """
    Draft invoice factory. Defaults give the reference invoice:
    2 x 100.00, tax 10% -> subtotal 200.00, tax 20.00, total 220.00.
    """
    def _make(
        *,
        patient_id=PATIENT_ID,
        doctor_id=DOCTOR_ID,
        items=None,
        tax_rate=Decimal("10"),
        discount_amount=Decimal("0"),
        due_date=None,
        issue=False,
    ):
        inv = InvoiceService.create(
            patient_id=patient_id,
            doctor_id=doctor_id,
            items=items if items is not None else consultation_items(),
            tax_rate=tax_rate,
            discount_amount=discount_amount,
            due_date=due_date or timezone.now() + timedelta(days=30),
        )
        if issue:
            inv = InvoiceService.issue(invoice_id=inv.id)
        return inv

    return _make


@pytest.fixture
def issued_invoice(make_invoice):
    return make_invoice(issue=True)


@pytest.fixture
def pay():
    def _pay(invoice, amount, method="cash"):
        return PaymentService.record_payment(
            invoice_id=invoice.id,
            amount=Decimal(str(amount)),
            method=method,
            processed_by="clerk-1",
        )

    return _pay
