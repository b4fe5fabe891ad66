# ledger_core/billing/api/serializers.py
from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from ledger_core.billing.models import BillingItem, ClaimStatus, Invoice, ItemCategory, Payment, PaymentMethod
from ledger_core.billing.selectors import PERIODS


class BillingItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = BillingItem
        fields = [
            "id",
            "position",
            "description",
            "code",
            "category",
            "taxable",
            "quantity",
            "unit_price",
            "discount_amount",
            "total_price",
            "notes",
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "invoice",
            "amount",
            "method",
            "status",
            "transaction_id",
            "receipt_number",
            "notes",
            "processed_by",
            "processed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class InsuranceClaimSerializer(serializers.Serializer):
    claim_id = serializers.CharField(allow_null=True)
    status = serializers.CharField()
    approved_amount = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    denial_reason = serializers.CharField(allow_null=True)


class InvoiceSerializer(serializers.ModelSerializer):
    items = BillingItemSerializer(many=True, read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)
    insurance_claim = InsuranceClaimSerializer(read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "patient_id",
            "doctor_id",
            "appointment_id",
            "invoice_number",
            "status",
            "items",
            "subtotal",
            "tax_rate",
            "tax_amount",
            "discount_amount",
            "total_amount",
            "amount_paid",
            "amount_due",
            "due_date",
            "payments",
            "insurance_claim",
            "notes",
            "version",
            "issued_at",
            "paid_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# -------------------------------------------------------------------
# Inputs
# -------------------------------------------------------------------

class BillingItemInputSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=255)
    code = serializers.CharField(required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(min_value=1, default=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.00"))
    category = serializers.ChoiceField(choices=ItemCategory.choices, default=ItemCategory.OTHER)
    taxable = serializers.BooleanField(required=False, default=True)
    discount_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.00"), required=False, default=Decimal("0.00")
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class InvoiceCreateSerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=64)
    doctor_id = serializers.CharField(max_length=64)
    appointment_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    items = BillingItemInputSerializer(many=True)
    tax_rate = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal("0.00"), required=False, default=Decimal("0.00")
    )
    discount_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.00"), required=False, default=Decimal("0.00")
    )
    due_date = serializers.DateTimeField(required=False, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class InvoiceUpdateSerializer(serializers.Serializer):
    """
    PATCH body; only the keys present are passed on to InvoiceService.update.
    """
    items = BillingItemInputSerializer(many=True, required=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal("0.00"), required=False)
    discount_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.00"), required=False
    )
    due_date = serializers.DateTimeField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    appointment_id = serializers.CharField(max_length=64, required=False, allow_blank=True)

    def validate(self, attrs):
        unknown = set(self.initial_data) - set(self.fields)
        if unknown:
            raise serializers.ValidationError({k: "This field cannot be updated." for k in sorted(unknown)})
        return attrs


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    method = serializers.ChoiceField(choices=PaymentMethod.choices)
    transaction_id = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ClaimSubmitSerializer(serializers.Serializer):
    claim_id = serializers.CharField(max_length=64)


class ClaimResolveSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ClaimStatus.choices)
    approved_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    denial_reason = serializers.CharField(required=False, allow_blank=True, default="")


class BillingStatisticsSerializer(serializers.Serializer):
    total_invoiced = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_outstanding = serializers.DecimalField(max_digits=14, decimal_places=2)
    invoice_count = serializers.IntegerField()
    paid_invoice_count = serializers.IntegerField()
    partially_paid_invoice_count = serializers.IntegerField()
    overdue_invoice_count = serializers.IntegerField()
    average_invoice_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    status_counts = serializers.DictField(child=serializers.IntegerField())
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()


class PatientBillingSummarySerializer(serializers.Serializer):
    patient_id = serializers.CharField()
    total_invoiced = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_outstanding = serializers.DecimalField(max_digits=14, decimal_places=2)
    invoice_count = serializers.IntegerField()
    overdue_invoice_count = serializers.IntegerField()
    insurance_claim_count = serializers.IntegerField()
    pending_insurance_amount = serializers.DecimalField(max_digits=14, decimal_places=2)


class InsurancePendingSummarySerializer(serializers.Serializer):
    claim_count = serializers.IntegerField()
    pending_amount = serializers.DecimalField(max_digits=14, decimal_places=2)


class StatisticsQuerySerializer(serializers.Serializer):
    period = serializers.ChoiceField(choices=[(p, p) for p in PERIODS], required=False, default="month")
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        start, end = attrs.get("start"), attrs.get("end")
        if start and end and start > end:
            raise serializers.ValidationError({"start": "Must not be after end."})
        return attrs
