"""Gateway middleware: request ids, caller identity and payload limits.

``RequestIdMiddleware`` ensures every incoming HTTP request receives a
request identifier (UUID). The identifier is read from the incoming
``X-Request-Id`` header when provided by the client, or generated
server-side otherwise. The id is stored on the ``request`` object and in a
context variable so code running downstream (log filters, the catalog HTTP
client) can access it without passing the value explicitly.

``CustomerContextMiddleware`` reads the caller identity forwarded by the
upstream session gateway (``X-Customer-ID`` and ``X-Customer-Role``).

``ApiSizeLimitMiddleware`` rejects oversized ``/api/`` bodies with 413.
"""

import uuid
import os
import contextvars
from django.http import JsonResponse

from django.utils.deprecation import MiddlewareMixin

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")
MAX_API_BYTES = int(os.getenv("API_MAX_BYTES", str(1 * 1024 * 1024)))


class RequestIdMiddleware(MiddlewareMixin):
    """Django middleware that sets and returns a per-request identifier.

    Attributes:
        HEADER (str): The name of the incoming HTTP header (in Django's
            ``request.META`` casing) that may contain a client-provided id.
        RESPONSE_HEADER (str): The name of the header returned on responses.
    """

    HEADER = "HTTP_X_REQUEST_ID"
    RESPONSE_HEADER = "X-Request-ID"

    def process_request(self, request):
        """Attach ``request.request_id`` and set ``REQUEST_ID_CTX``.

        Args:
            request: Django HttpRequest instance.
        """
        rid = request.META.get(self.HEADER)
        if not rid:
            rid = str(uuid.uuid4())
        request.request_id = rid
        REQUEST_ID_CTX.set(rid)

    def process_response(self, request, response):
        rid = getattr(request, "request_id", REQUEST_ID_CTX.get())
        response[self.RESPONSE_HEADER] = rid
        return response


class CustomerContextMiddleware(MiddlewareMixin):
    """Expose the forwarded caller as ``request.customer_id`` / ``request.is_admin``.

    Requests without ``X-Customer-ID`` are anonymous (``customer_id`` None).
    The role header is only honored together with a customer id.
    """

    CUSTOMER_HEADER = "HTTP_X_CUSTOMER_ID"
    ROLE_HEADER = "HTTP_X_CUSTOMER_ROLE"
    ADMIN_ROLE = "admin"

    def process_request(self, request):
        customer_id = (request.META.get(self.CUSTOMER_HEADER) or "").strip() or None
        role = (request.META.get(self.ROLE_HEADER) or "").strip().lower()
        request.customer_id = customer_id
        request.is_admin = bool(customer_id) and role == self.ADMIN_ROLE


class ApiSizeLimitMiddleware(MiddlewareMixin):
    def process_request(self, request):
        if request.path.startswith("/api/"):
            clen = request.META.get("CONTENT_LENGTH")
            if clen and clen.isdigit() and int(clen) > MAX_API_BYTES:
                return JsonResponse({"detail": "PAYLOAD_TOO_LARGE"}, status=413)
