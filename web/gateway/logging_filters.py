"""Logging filters for enriching log records with request context.

Adding ``RequestIdFilter`` to a handler puts the current request id on
every record, so JSON log lines from views, domain services and the
catalog HTTP client can be correlated per request.
"""

from logging import Filter, LogRecord
from .middleware import REQUEST_ID_CTX


class RequestIdFilter(Filter):
    """Attach a ``request_id`` attribute to log records.

    The value comes from ``REQUEST_ID_CTX``; outside a request it is the
    ContextVar default, a hyphen.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = REQUEST_ID_CTX.get()
        return True
