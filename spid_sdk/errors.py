"""
SPiD SDK Error Classes

All failures surfaced by the SDK derive from SDKError. Fields returned by the
server in an error body are merged onto the error instance.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional


class SDKError(Exception):
    """Base error class for the SPiD SDK."""

    def __init__(
        self,
        message: str,
        code: Any = 500,
        error_object: Optional[Mapping[str, Any]] = None,
        status: Optional[int] = None,
    ):
        extra_fields: Dict[str, Any] = dict(error_object) if isinstance(error_object, Mapping) else {}
        # The server may override both the message and the code
        message = extra_fields.get("message") or message
        super().__init__(message)
        self.message = message
        self.code = extra_fields.get("code") or code
        self.status = status
        self.extra_fields = extra_fields
        self.timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def __getattr__(self, name: str) -> Any:
        extra_fields = self.__dict__.get("extra_fields") or {}
        if name in extra_fields:
            return extra_fields[name]
        raise AttributeError(f"{self.__class__.__name__!s} has no attribute {name!r}")

    @classmethod
    def assert_(cls, condition: Any, message: str) -> None:
        """Raise a ConfigError with ``message`` unless ``condition`` holds."""
        if not condition:
            raise ConfigError(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            **self.extra_fields,
            "name": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "status": self.status,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class ConfigError(SDKError):
    """Invalid constructor or call arguments. Raised before any I/O."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 500, details)


class TransportError(SDKError):
    """Network error (connection issues, timeouts)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 0)
        self.details = details or {}


class HttpError(SDKError):
    """The server answered with a status code outside 200-299."""

    def __init__(
        self,
        message: str,
        status: int,
        error_object: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message, status, error_object, status=status)

    @classmethod
    def from_response(
        cls, status: int, reason: str, body: Any = None
    ) -> "HttpError":
        """Create the error matching an HTTP status and its parsed body."""
        error_object = body if isinstance(body, Mapping) else None
        if status == 401:
            return AuthError(reason, error_object)
        return HttpError(reason, status, error_object)


class AuthError(HttpError):
    """401 Unauthorized. The only error the refresh coordinator recovers from."""

    def __init__(self, message: str = "Unauthorized", error_object: Optional[Mapping[str, Any]] = None):
        super().__init__(message, 401, error_object)


class MalformedResponseError(SDKError):
    """The response body could not be parsed as JSON."""

    def __init__(self, message: str, status: int, body: str = ""):
        super().__init__(message, status, status=status)
        self.body = body


def is_sdk_error(error: Any) -> bool:
    """Check if error is an SDKError."""
    return isinstance(error, SDKError)
