"""JSON error envelope for webhook replies."""
from __future__ import annotations

from fastapi.responses import JSONResponse


def error_envelope(
    *,
    code: str,
    message: str,
    trace_id: str,
    detail: str | None = None,
) -> dict:
    out = {
        "code": code,
        "message": message,
        "trace_id": trace_id,
        "error": code,
    }
    if detail:
        out["detail"] = detail
    return out


def error_response(code: str, message: str, status_code: int, trace_id: str, detail: str | None = None) -> JSONResponse:
    resp = JSONResponse(
        error_envelope(code=code, message=message, trace_id=trace_id, detail=detail),
        status_code=status_code,
    )
    if trace_id:
        resp.headers["X-Trace-Id"] = trace_id
    return resp
