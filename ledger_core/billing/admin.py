# ledger_core/billing/admin.py
from __future__ import annotations

from django.contrib import admin

from ledger_core.billing.models import BillingItem, Invoice, InvoiceSequence, Payment


class BillingItemInline(admin.TabularInline):
    model = BillingItem
    extra = 0
    readonly_fields = ("total_price",)


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    can_delete = False
    readonly_fields = ("amount", "method", "status", "receipt_number", "processed_by", "processed_at")


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "patient_id",
        "doctor_id",
        "status",
        "total_amount",
        "amount_paid",
        "amount_due",
        "due_date",
        "claim_status",
        "created_at",
    )
    list_filter = ("status", "claim_status", "created_at")
    search_fields = ("invoice_number", "patient_id", "doctor_id", "claim_id")
    # money fields are owned by billing.services
    readonly_fields = (
        "invoice_number",
        "subtotal",
        "tax_amount",
        "total_amount",
        "amount_paid",
        "amount_due",
        "version",
        "issued_at",
        "paid_at",
    )
    inlines = [BillingItemInline, PaymentInline]
    ordering = ("-created_at",)


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("receipt_number", "invoice", "amount", "method", "status", "processed_by", "processed_at")
    list_filter = ("method", "status")
    search_fields = ("receipt_number", "transaction_id", "invoice__invoice_number")
    ordering = ("-processed_at",)


@admin.register(InvoiceSequence)
class InvoiceSequenceAdmin(admin.ModelAdmin):
    list_display = ("day", "last_value", "updated_at")
    ordering = ("-day",)
