from __future__ import annotations

from satsboard.schemas import ErrorCode


class UpstreamError(Exception):
    """An upstream market source could not supply usable data."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


class UpstreamStatusError(UpstreamError):
    code = ErrorCode.UPSTREAM_STATUS

    def __init__(self, source: str, status_code: int):
        super().__init__(source, f"HTTP {status_code}")
        self.status_code = status_code


class UpstreamUnavailable(UpstreamError):
    code = ErrorCode.UPSTREAM_UNAVAILABLE


class UpstreamTimeout(UpstreamUnavailable):
    code = ErrorCode.UPSTREAM_TIMEOUT


class MalformedPayload(UpstreamError):
    code = ErrorCode.MALFORMED_PAYLOAD
