"""
Console Errors
Failure types raised by the transport and recorded by the stores
"""

from typing import Any, Dict, Optional


class ConsoleError(Exception):
    """Base failure carrying a human-readable message, status and details"""

    kind = "error"

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Serializable summary for display"""
        data = {"kind": self.kind, "message": self.message}
        if self.status_code is not None:
            data["status_code"] = self.status_code
        if self.details is not None:
            data["details"] = self.details
        return data


class NetworkFailure(ConsoleError):
    """The request never reached the backend or never returned"""

    kind = "network"

    def __init__(self, message: str, details: Any = None):
        super().__init__(message, status_code=None, details=details)


class HTTPFailure(ConsoleError):
    """The backend answered with a non-2xx status"""

    kind = "http"

    def __init__(self, message: str, status_code: int, details: Any = None):
        super().__init__(message, status_code=status_code, details=details)


class ValidationFailure(ConsoleError):
    """Client-side check failed; nothing was sent to the backend"""

    kind = "validation"

    def __init__(self, message: str, details: Any = None):
        super().__init__(message, status_code=None, details=details)
