"""FastAPI entry point."""
import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException

from botruntime.middleware.trace_id import TraceIdMiddleware
from botruntime.routers import health, telegram
from botruntime.utils.api_errors import error_response

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # shutdown


app = FastAPI(
    title="Bot Runtime",
    description="Telegram webhook runtime for prompt-built bots",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(TraceIdMiddleware)

app.include_router(health.router, tags=["System"])
app.include_router(telegram.router, prefix="/v1/telegram", tags=["Telegram"])


def _request_trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", None) or str(uuid.uuid4())[:16]


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else "Request error"
    return error_response("http_error", detail, exc.status_code, _request_trace_id(request))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    trace_id = _request_trace_id(request)
    logger.exception("Unhandled exception trace_id=%s path=%s", trace_id, request.url.path)
    return error_response("internal_error", "Internal server error", 500, trace_id)
