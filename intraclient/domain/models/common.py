"""Defines common Value Objects used across the request pipeline.

These objects represent simple values like access tokens, routes and query
maps, ensuring consistency and type safety.
"""

from typing import NewType, List, Any, Dict, TypedDict, Union, Mapping, Optional

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
AccessToken = NewType("AccessToken", str)      # Bearer token sent to the API
HttpMethod = NewType("HttpMethod", str)        # 'GET', 'POST', 'PUT', 'PATCH', 'DELETE'
Route = NewType("Route", str)                  # Absolute URL without query string
PageNumber = NewType("PageNumber", int)        # 1-based page index

# === Query Strings ===
QueryScalar = Union[str, int, float, bool]
# Values may be nested mappings (flattened to `key[sub]=value`) or lists.
QueryValue = Union[QueryScalar, List[QueryScalar], Mapping[str, Any]]
QueryParams = Dict[str, QueryValue]

# Methods that are safe to repeat after a server error.
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})

# --- Structured Data ---
class TokenPayload(TypedDict, total=False):
    """Token endpoint response body."""
    access_token: str
    token_type: str
    expires_in: int
    refresh_token: str
    scope: str
    created_at: int
    secret_valid_until: int

# An explicit token override: either the raw token or a payload returned by
# the authorization-code exchange.
TokenOverride = Union[str, TokenPayload, Mapping[str, Any]]


def token_from_override(override: Optional[TokenOverride]) -> Optional[AccessToken]:
    """Extracts the bearer token from an explicit override, if any."""
    if override is None:
        return None
    if isinstance(override, str):
        return AccessToken(override)
    return AccessToken(override["access_token"])
