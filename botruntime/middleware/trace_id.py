"""Request trace_id: exposed as request.state.trace_id and echoed in X-Trace-Id."""
import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

SCOPE_KEY = "trace_id"
TRACE_HEADER = "X-Trace-Id"
_VALID_INBOUND = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


def ensure_trace_id(scope: dict, inbound: str | None = None) -> str:
    """Same trace_id for the whole request; a well-formed inbound id is reused."""
    tid = scope.get(SCOPE_KEY)
    if tid and isinstance(tid, str):
        return tid
    if inbound and _VALID_INBOUND.match(inbound):
        tid = inbound
    else:
        tid = uuid.uuid4().hex[:16]
    scope[SCOPE_KEY] = tid
    return tid


class TraceIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        trace_id = ensure_trace_id(request.scope, request.headers.get(TRACE_HEADER))
        request.state.trace_id = trace_id
        response = await call_next(request)
        response.headers.setdefault(TRACE_HEADER, trace_id)
        return response
