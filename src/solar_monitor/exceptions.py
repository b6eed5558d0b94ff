"""Exception types raised by Solar Monitor components."""


class SolarMonitorError(Exception):
    """Base exception for all Solar Monitor components."""


class EmptyWindowError(SolarMonitorError, ValueError):
    """Raised when statistics are requested for a window with no readings."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "Reading window is empty; at least one reading is required")


class PayloadShapeError(SolarMonitorError, ValueError):
    """Raised when an upstream payload matches neither known response shape."""

    def __init__(self, reason: str, payload_type: str | None = None) -> None:
        message = f"Unrecognised upstream payload: {reason}"
        if payload_type:
            message = f"{message} (got {payload_type})"
        super().__init__(message)
        self.reason = reason
        self.payload_type = payload_type


class UpstreamError(SolarMonitorError):
    """Raised when the upstream endpoint could not be read after all retries."""

    def __init__(self, url: str, attempts: int, message: str | None = None) -> None:
        if message is None:
            message = f"Upstream {url} failed after {attempts} attempt(s)"
        super().__init__(message)
        self.url = url
        self.attempts = attempts
