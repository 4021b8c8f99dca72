"""Error types surfaced to callers of the client.

Every unrecoverable request failure becomes exactly one `IntraClientError`,
tagged with an `ErrorKind` so callers can branch on the failure category.
"""

import math
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Category of a terminal request failure."""
    TRANSPORT = "transport"                  # No response (connection, timeout...)
    HTTP_STATUS = "http_status"              # Non-2xx status, not retried
    TOKEN_ACQUISITION = "token_acquisition"  # The token endpoint itself failed
    EXHAUSTED_RETRIES = "exhausted_retries"  # Retryable status, attempts used up


class IntraClientError(Exception):
    """Structured representation of a failed API call."""

    def __init__(
        self,
        message: str,
        *,
        method: Optional[str] = None,
        route: Optional[str] = None,
        status_code: Optional[int] = None,
        status_text: str = "Unknown",
        data: Any = None,
        kind: ErrorKind = ErrorKind.HTTP_STATUS,
    ):
        super().__init__(message)
        self.method = method
        self.route = route
        self.status_code = status_code
        self.status_text = status_text
        self.data = data
        self.kind = kind

    @property
    def status(self) -> float:
        """Numeric status, NaN when no response was received."""
        return float(self.status_code) if self.status_code is not None else math.nan

    def __repr__(self) -> str:
        return (
            f"IntraClientError(kind={self.kind.value!r}, method={self.method!r}, "
            f"route={self.route!r}, status_code={self.status_code!r})"
        )


def is_intra_client_error(error: Any) -> bool:
    return isinstance(error, IntraClientError)
