"""intraclient: authenticated async client for the 42 Intra REST API.

Provides OAuth2 token handling, a shared rate limiter, automatic retries on
transient failures and transparent multi-page collection fetching.
"""

from intraclient.core.client import IntraClient, OAuthUrl
from intraclient.core.pagination import PaginatedItems
from intraclient.domain.errors import ErrorKind, IntraClientError, is_intra_client_error
from intraclient.infrastructure.config.settings import ClientConfig

__all__ = [
    "IntraClient",
    "OAuthUrl",
    "PaginatedItems",
    "ClientConfig",
    "ErrorKind",
    "IntraClientError",
    "is_intra_client_error",
]

__version__ = "0.3.0"
