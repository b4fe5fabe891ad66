# ledger_core/common/api/exceptions.py
from __future__ import annotations

import logging
import uuid
from typing import Any

from django.core.exceptions import ObjectDoesNotExist
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, NotAuthenticated, NotFound, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


def ensure_request_id(request) -> str:
    """
    Ensures request has a stable request_id attribute and returns it.
    Safe to call from middleware and DRF exception handler.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            setattr(request, "request_id", rid)
    return rid


def build_error_envelope(
    *,
    request=None,
    code: str,
    message: str,
    details: Any = None,
    current_state: Any = None,
) -> dict[str, Any]:
    """
    Canonical error envelope.
    current_state carries the unmodified resource when a mutation was rejected.
    """
    rid = ensure_request_id(request)
    error = {
        "code": code,
        "message": message,
        "details": details,
        "request_id": rid,
    }
    if current_state is not None:
        error["current_state"] = current_state
    return {"error": error}


class ConflictError(APIException):
    """
    409 Conflict: a concurrent writer changed the resource between read and write,
    or the caller's expected version is stale. Callers are expected to retry.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict."
    default_code = "conflict"

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)


class InvalidStateError(APIException):
    """
    409: the operation is not permitted in the resource's current status
    (e.g. editing items on an issued invoice, voiding a refunded payment).
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Operation not permitted in the current state."
    default_code = "invalid_state"

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)


class NotFoundError(NotFound):
    default_detail = "Not found."
    default_code = "not_found"


def _code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, NotAuthenticated):
        return "not_authenticated"
    if isinstance(exc, PermissionDenied):
        return "permission_denied"
    if isinstance(exc, (Http404, NotFound)):
        return "not_found"
    if isinstance(exc, APIException):
        return getattr(exc, "default_code", "api_error") or "api_error"
    if http_status >= 500:
        return "server_error"
    return "error"


def _field_lists(details: Any) -> Any:
    # {"field": "msg"} and {"field": ["msg"]} render the same way
    if not isinstance(details, dict):
        return details
    return {k: v if isinstance(v, (list, dict)) else [v] for k, v in details.items()}


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")

    if isinstance(exc, ObjectDoesNotExist):
        exc = NotFoundError(str(exc) or None)

    response = drf_exception_handler(exc, context)

    # Truly unhandled error
    if response is None:
        logger.exception("unhandled API error", exc_info=exc)
        return Response(
            build_error_envelope(
                request=request,
                code="server_error",
                message="Unexpected server error.",
                details=None,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    http_status = response.status_code
    code = _code_for(exc, http_status)

    # DRF standardizes errors into response.data
    data = response.data

    # Message + details rules:
    # 1) If {"detail": "..."} only -> message=detail, details=None
    # 2) If {"detail": "...", ...} -> message=detail, details={...without detail}
    # 3) Otherwise -> message="Request failed.", details=data
    message = "Request failed."
    details = data

    if isinstance(data, dict) and "detail" in data:
        message = str(data.get("detail"))
        rest = {k: v for k, v in data.items() if k != "detail"}
        details = rest or None

    if isinstance(exc, ValidationError):
        details = _field_lists(details)

    return Response(
        build_error_envelope(
            request=request,
            code=code,
            message=message,
            details=details,
            current_state=getattr(exc, "current_state", None),
        ),
        status=http_status,
        headers=response.headers,
    )
