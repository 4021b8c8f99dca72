"""Converts failed httpx attempts into `IntraClientError`.

Only the final attempt of a logical request is normalized; retried attempts
never produce an error object.
"""

import logging
from typing import Optional

import httpx

from intraclient.domain.errors import ErrorKind, IntraClientError
from intraclient.domain.models.common import Route
from intraclient.infrastructure.http.transport import decode_body, strip_query

logger = logging.getLogger(__name__)


def failed_request(exc: httpx.HTTPError) -> Optional[httpx.Request]:
    """Returns the request attached to an httpx error, if any."""
    try:
        return exc.request
    except RuntimeError:
        # httpx raises when the error was created without a request
        return None


def failed_response(exc: httpx.HTTPError) -> Optional[httpx.Response]:
    return exc.response if isinstance(exc, httpx.HTTPStatusError) else None


def status_of(exc: httpx.HTTPError) -> Optional[int]:
    response = failed_response(exc)
    return response.status_code if response is not None else None


def normalize(exc: httpx.HTTPError, kind: Optional[ErrorKind] = None) -> IntraClientError:
    """Builds the user-visible error for a terminal transport failure.

    Args:
        exc: The httpx error raised by the final attempt.
        kind: Failure category; inferred from the error when omitted.

    Returns:
        An IntraClientError whose message reads
        "<METHOD> <ROUTE> - HTTP <status> <statusText>" when the request is
        known, or the httpx message otherwise.
    """
    request = failed_request(exc)
    response = failed_response(exc)

    method = request.method.upper() if request is not None else None
    route = Route(strip_query(request.url)) if request is not None else None

    status_code = response.status_code if response is not None else None
    status_text = (response.reason_phrase or "Unknown") if response is not None else "Unknown"

    if kind is None:
        kind = ErrorKind.HTTP_STATUS if response is not None else ErrorKind.TRANSPORT

    if method and route:
        shown_status = status_code if status_code is not None else "NaN"
        message = f"{method} {route} - HTTP {shown_status} {status_text}"
    else:
        message = str(exc) or type(exc).__name__

    return IntraClientError(
        message,
        method=method,
        route=route,
        status_code=status_code,
        status_text=status_text,
        data=decode_body(response),
        kind=kind,
    )
