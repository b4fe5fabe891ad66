# ledger_core/billing/api/views.py
from __future__ import annotations

from datetime import timedelta
from typing import Callable, TypeVar
from uuid import UUID

from django.conf import settings
from django.utils import timezone
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import APIException, NotFound, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from ledger_core.billing.api.filters import InvoiceFilter
from ledger_core.billing.api.serializers import (
    BillingStatisticsSerializer,
    ClaimResolveSerializer,
    ClaimSubmitSerializer,
    InsurancePendingSummarySerializer,
    InvoiceCreateSerializer,
    InvoiceSerializer,
    InvoiceUpdateSerializer,
    PatientBillingSummarySerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
    ReasonSerializer,
    StatisticsQuerySerializer,
)
from ledger_core.billing.models import Invoice
from ledger_core.billing.selectors import (
    PERIODS,
    billing_statistics,
    get_invoice,
    get_invoice_by_number,
    insurance_pending_summary,
    invoices_filtered,
    overdue_invoices,
    patient_billing_summary,
    payments_for_invoice,
)
from ledger_core.billing.services import InsuranceClaimService, InvoiceService, PaymentService
from ledger_core.common.api.exceptions import NotFoundError
from ledger_core.common.api.pagination import paginate
from ledger_core.common.context import actor_from_request

T = TypeVar("T")

IF_MATCH_PARAMETER = OpenApiParameter(
    name="If-Match",
    type=OpenApiTypes.STR,
    location=OpenApiParameter.HEADER,
    required=False,
    description="Invoice version (ETag) the change is based on; a stale version is rejected with 409.",
)


def _invoice_uuid(value) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise NotFoundError("Invoice not found.")


def _expected_version(request) -> int | None:
    raw = (request.headers.get("If-Match") or "").strip()
    if not raw or raw == "*":
        return None
    if raw.startswith("W/"):
        raw = raw[2:]
    try:
        return int(raw.strip('"'))
    except ValueError:
        raise ValidationError({"If-Match": "Expected an invoice version."})


def _invoice_response(invoice: Invoice, http_status: int = status.HTTP_200_OK) -> Response:
    return Response(
        InvoiceSerializer(invoice).data,
        status=http_status,
        headers={"ETag": f'"{invoice.version}"'},
    )


def _with_current_state(invoice_id: UUID, fn: Callable[[], T]) -> T:
    """
    Run a ledger mutation; if it is rejected, attach the invoice as it stands
    (unmodified) so the error envelope carries it as `current_state`.
    """
    try:
        return fn()
    except APIException as exc:
        if not isinstance(exc, NotFound):
            invoice = Invoice.objects.prefetch_related("items", "payments").filter(id=invoice_id).first()
            if invoice is not None:
                exc.current_state = InvoiceSerializer(invoice).data
        raise


class InvoiceViewSet(viewsets.GenericViewSet):
    """
    Billing invoices:
    - list/retrieve/create/partial_update/destroy (draft)
    - issue, cancel, mark_overdue, refund
    - claim/submit, claim/resolve
    - by-number lookup
    """
    serializer_class = InvoiceSerializer
    queryset = Invoice.objects.none()

    @extend_schema(
        tags=["Billing"],
        responses={200: InvoiceSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="patient", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="doctor", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="claim_status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        f = InvoiceFilter(request.query_params, queryset=invoices_filtered())
        if not f.is_valid():
            raise ValidationError(f.errors)

        qs = f.qs.prefetch_related("items", "payments")
        return paginate(request, qs, InvoiceSerializer)

    @extend_schema(tags=["Billing"], responses={200: InvoiceSerializer})
    def retrieve(self, request, pk=None):
        return _invoice_response(get_invoice(invoice_id=_invoice_uuid(pk)))

    @extend_schema(
        tags=["Billing"],
        request=InvoiceCreateSerializer,
        responses={201: InvoiceSerializer},
    )
    def create(self, request):
        ser = InvoiceCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        due_date = data.get("due_date") or timezone.now() + timedelta(
            days=getattr(settings, "BILLING_DEFAULT_DUE_DAYS", 30)
        )

        inv = InvoiceService.create(
            patient_id=data["patient_id"],
            doctor_id=data["doctor_id"],
            appointment_id=data.get("appointment_id", ""),
            items=data["items"],
            tax_rate=data.get("tax_rate"),
            discount_amount=data.get("discount_amount"),
            due_date=due_date,
            notes=data.get("notes", ""),
            actor=actor_from_request(request),
        )
        return _invoice_response(inv, status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Billing"],
        request=InvoiceUpdateSerializer,
        responses={200: InvoiceSerializer},
        parameters=[IF_MATCH_PARAMETER],
    )
    def partial_update(self, request, pk=None):
        invoice_id = _invoice_uuid(pk)

        ser = InvoiceUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        inv = _with_current_state(
            invoice_id,
            lambda: InvoiceService.update(
                invoice_id=invoice_id,
                updates=dict(ser.validated_data),
                actor=actor_from_request(request),
                expected_version=_expected_version(request),
            ),
        )
        return _invoice_response(inv)

    @extend_schema(tags=["Billing"], responses={204: None}, parameters=[IF_MATCH_PARAMETER])
    def destroy(self, request, pk=None):
        invoice_id = _invoice_uuid(pk)
        _with_current_state(
            invoice_id,
            lambda: InvoiceService.delete(
                invoice_id=invoice_id,
                actor=actor_from_request(request),
                expected_version=_expected_version(request),
            ),
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Billing"], request=None, responses={200: InvoiceSerializer}, parameters=[IF_MATCH_PARAMETER])
    @action(detail=True, methods=["post"], url_path="issue")
    def issue(self, request, pk=None):
        invoice_id = _invoice_uuid(pk)
        inv = _with_current_state(
            invoice_id,
            lambda: InvoiceService.issue(
                invoice_id=invoice_id,
                actor=actor_from_request(request),
                expected_version=_expected_version(request),
            ),
        )
        return _invoice_response(inv)

    @extend_schema(tags=["Billing"], request=ReasonSerializer, responses={200: InvoiceSerializer}, parameters=[IF_MATCH_PARAMETER])
    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        invoice_id = _invoice_uuid(pk)
        ser = ReasonSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        inv = _with_current_state(
            invoice_id,
            lambda: InvoiceService.cancel(
                invoice_id=invoice_id,
                reason=ser.validated_data.get("reason", ""),
                actor=actor_from_request(request),
                expected_version=_expected_version(request),
            ),
        )
        return _invoice_response(inv)

    @extend_schema(tags=["Billing"], request=None, responses={200: InvoiceSerializer})
    @action(detail=True, methods=["post"], url_path="mark_overdue")
    def mark_overdue(self, request, pk=None):
        invoice_id = _invoice_uuid(pk)
        inv = _with_current_state(
            invoice_id,
            lambda: InvoiceService.mark_overdue(invoice_id=invoice_id, actor=actor_from_request(request)),
        )
        return _invoice_response(inv)

    @extend_schema(tags=["Billing"], request=ReasonSerializer, responses={200: InvoiceSerializer}, parameters=[IF_MATCH_PARAMETER])
    @action(detail=True, methods=["post"], url_path="refund")
    def refund(self, request, pk=None):
        invoice_id = _invoice_uuid(pk)
        ser = ReasonSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        inv = _with_current_state(
            invoice_id,
            lambda: InvoiceService.refund(
                invoice_id=invoice_id,
                reason=ser.validated_data.get("reason", ""),
                actor=actor_from_request(request),
                expected_version=_expected_version(request),
            ),
        )
        return _invoice_response(inv)

    @extend_schema(tags=["Billing"], request=ClaimSubmitSerializer, responses={200: InvoiceSerializer})
    @action(detail=True, methods=["post"], url_path="claim/submit")
    def claim_submit(self, request, pk=None):
        invoice_id = _invoice_uuid(pk)
        ser = ClaimSubmitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        inv = _with_current_state(
            invoice_id,
            lambda: InsuranceClaimService.submit(
                invoice_id=invoice_id,
                claim_id=ser.validated_data["claim_id"],
                actor=actor_from_request(request),
            ),
        )
        return _invoice_response(inv)

    @extend_schema(tags=["Billing"], request=ClaimResolveSerializer, responses={200: InvoiceSerializer})
    @action(detail=True, methods=["post"], url_path="claim/resolve")
    def claim_resolve(self, request, pk=None):
        invoice_id = _invoice_uuid(pk)
        ser = ClaimResolveSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        inv = _with_current_state(
            invoice_id,
            lambda: InsuranceClaimService.resolve(
                invoice_id=invoice_id,
                status=ser.validated_data["status"],
                approved_amount=ser.validated_data.get("approved_amount"),
                denial_reason=ser.validated_data.get("denial_reason", ""),
                actor=actor_from_request(request),
            ),
        )
        return _invoice_response(inv)

    @extend_schema(tags=["Billing"], responses={200: InvoiceSerializer})
    @action(detail=False, methods=["get"], url_path=r"by-number/(?P<invoice_number>[^/]+)")
    def by_number(self, request, invoice_number=None):
        return _invoice_response(get_invoice_by_number(invoice_number=invoice_number))


class InvoicePaymentsView(APIView):
    """
    /billing/invoices/<invoice_id>/payments/
    - GET list payments
    - POST record a payment
    """

    @extend_schema(tags=["Billing"], responses={200: PaymentSerializer(many=True)})
    def get(self, request, invoice_id: UUID):
        inv = get_invoice(invoice_id=invoice_id)
        return Response(PaymentSerializer(payments_for_invoice(invoice=inv), many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Billing"],
        request=PaymentCreateSerializer,
        responses={201: PaymentSerializer},
        parameters=[IF_MATCH_PARAMETER],
    )
    def post(self, request, invoice_id: UUID):
        ser = PaymentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        actor = actor_from_request(request)
        pay = _with_current_state(
            invoice_id,
            lambda: PaymentService.record_payment(
                invoice_id=invoice_id,
                amount=ser.validated_data["amount"],
                method=ser.validated_data["method"],
                transaction_id=ser.validated_data.get("transaction_id", ""),
                notes=ser.validated_data.get("notes", ""),
                processed_by=actor.id,
                actor=actor,
                expected_version=_expected_version(request),
            ),
        )
        return Response(PaymentSerializer(pay).data, status=status.HTTP_201_CREATED)


class InvoicePaymentVoidView(APIView):
    """
    /billing/invoices/<invoice_id>/payments/<payment_id>/void/
    """

    @extend_schema(
        tags=["Billing"],
        request=ReasonSerializer,
        responses={200: PaymentSerializer},
        parameters=[IF_MATCH_PARAMETER],
    )
    def post(self, request, invoice_id: UUID, payment_id: UUID):
        ser = ReasonSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        pay = _with_current_state(
            invoice_id,
            lambda: PaymentService.void_payment(
                invoice_id=invoice_id,
                payment_id=payment_id,
                reason=ser.validated_data.get("reason", ""),
                actor=actor_from_request(request),
                expected_version=_expected_version(request),
            ),
        )
        return Response(PaymentSerializer(pay).data, status=status.HTTP_200_OK)


class BillingReportViewSet(viewsets.GenericViewSet):
    """
    Read-only reporting surface.
    """
    serializer_class = BillingStatisticsSerializer
    queryset = Invoice.objects.none()

    @extend_schema(
        tags=["Billing Reports"],
        responses={200: BillingStatisticsSerializer},
        parameters=[
            OpenApiParameter(
                name="period",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                enum=list(PERIODS),
                description="Rolling window back from now (default month).",
            ),
            OpenApiParameter(name="start", type=OpenApiTypes.DATETIME, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="end", type=OpenApiTypes.DATETIME, location=OpenApiParameter.QUERY, required=False),
        ],
    )
    @action(detail=False, methods=["get"], url_path="statistics")
    def statistics(self, request):
        q = StatisticsQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        stats = billing_statistics(
            period=q.validated_data["period"],
            start=q.validated_data.get("start"),
            end=q.validated_data.get("end"),
        )
        return Response(BillingStatisticsSerializer(stats).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Billing Reports"], responses={200: InvoiceSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="overdue")
    def overdue(self, request):
        qs = overdue_invoices().prefetch_related("items", "payments")
        return paginate(request, qs, InvoiceSerializer)

    @extend_schema(tags=["Billing Reports"], responses={200: InsurancePendingSummarySerializer})
    @action(detail=False, methods=["get"], url_path="insurance-pending")
    def insurance_pending(self, request):
        return Response(InsurancePendingSummarySerializer(insurance_pending_summary()).data, status=status.HTTP_200_OK)


class PatientBillingViewSet(viewsets.GenericViewSet):
    """
    /billing/patients/<patient_id>/summary/ and /coverage/
    """
    serializer_class = PatientBillingSummarySerializer
    queryset = Invoice.objects.none()
    lookup_value_regex = r"[^/]+"

    @extend_schema(tags=["Billing Reports"], responses={200: PatientBillingSummarySerializer})
    @action(detail=True, methods=["get"], url_path="summary")
    def summary(self, request, pk=None):
        data = patient_billing_summary(patient_id=pk)
        return Response(PatientBillingSummarySerializer(data).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["Billing Reports"], responses={200: OpenApiTypes.OBJECT})
    @action(detail=True, methods=["get"], url_path="coverage")
    def coverage(self, request, pk=None):
        covered = InsuranceClaimService.check_coverage(patient_id=pk)
        return Response({"patient_id": pk, "has_active_coverage": covered}, status=status.HTTP_200_OK)
