# ledger_core/common/middleware.py
from __future__ import annotations

from django.utils.deprecation import MiddlewareMixin

from ledger_core.common.api.exceptions import ensure_request_id


class RequestIdMiddleware(MiddlewareMixin):
    """
    Attaches request.request_id (client supplied X-Request-Id or a fresh one)
    and echoes it back so error envelopes and logs can be correlated.
    """

    HEADER = "X-Request-Id"
    META_KEY = "HTTP_X_REQUEST_ID"

    def process_request(self, request):
        incoming = (request.META.get(self.META_KEY) or "").strip()
        if incoming:
            request.request_id = incoming[:64]
        ensure_request_id(request)

    def process_response(self, request, response):
        rid = getattr(request, "request_id", None)
        if rid and not response.has_header(self.HEADER):
            response[self.HEADER] = rid
        return response
