# ledger_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from ledger_core.audit.api.views import AuditEventViewSet
from ledger_core.billing.api.views import (
    BillingReportViewSet,
    InvoicePaymentsView,
    InvoicePaymentVoidView,
    InvoiceViewSet,
    PatientBillingViewSet,
)
from ledger_core.notifications.api.views import NotificationViewSet

router = DefaultRouter()

router.register(r"billing/invoices", InvoiceViewSet, basename="billing-invoices")
router.register(r"billing/reports", BillingReportViewSet, basename="billing-reports")
router.register(r"billing/patients", PatientBillingViewSet, basename="billing-patients")
router.register(r"audit/events", AuditEventViewSet, basename="audit-events")
router.register(r"notifications", NotificationViewSet, basename="notifications")

urlpatterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),

    # Invoice payments (non-ViewSet endpoints)
    path(
        "billing/invoices/<uuid:invoice_id>/payments/",
        InvoicePaymentsView.as_view(),
        name="billing-invoice-payments",
    ),
    path(
        "billing/invoices/<uuid:invoice_id>/payments/<uuid:payment_id>/void/",
        InvoicePaymentVoidView.as_view(),
        name="billing-invoice-payment-void",
    ),

    # Router URLs last (so explicit paths win if ever overlapping)
    *router.urls,
]
