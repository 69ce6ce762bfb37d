"""Runtime error taxonomy."""
from __future__ import annotations


class BotRuntimeError(Exception):
    code = "runtime_error"

    def __init__(self, message: str = "", *, detail: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.detail = detail


class NotFound(BotRuntimeError):
    """No active project for a token, or state points at a missing flow/step."""

    code = "not_found"


class UpstreamFailure(BotRuntimeError):
    """Telegram, AI provider or an API integration failed or timed out."""

    code = "upstream_failure"


class MalformedInput(BotRuntimeError):
    """Missing bot token or an unparseable update body."""

    code = "malformed_input"


class TelemetryFailure(BotRuntimeError):
    code = "telemetry_failure"
