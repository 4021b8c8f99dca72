"""Domain models describing one logical API call and its retry state."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from .common import HttpMethod, QueryParams, TokenOverride, PageNumber

# --- Credentials ---

@dataclass(frozen=True)
class Credentials:
    """Client application credentials, fixed for the client's lifetime."""
    client_id: str
    client_secret: str
    scopes: Tuple[str, ...] = ("public",)

    @property
    def scope(self) -> str:
        """Scopes joined the way the token endpoint expects them."""
        return " ".join(self.scopes)

    def __repr__(self) -> str:
        # Keep the secret out of logs and tracebacks
        return f"Credentials(client_id={self.client_id!r}, scopes={self.scopes!r})"

# --- Request Structures ---

@dataclass
class RequestIntent:
    """Caller-supplied description of a single logical request."""
    method: HttpMethod
    url: str
    query: QueryParams = field(default_factory=dict)
    body: Optional[Any] = None
    token: Optional[TokenOverride] = None
    log_line: bool = True
    err_log_body: bool = True

    def with_query(self, **params: Any) -> "RequestIntent":
        """Returns a copy whose query has `params` merged on top."""
        merged: QueryParams = {**self.query, **params}
        return RequestIntent(
            method=self.method,
            url=self.url,
            query=merged,
            body=self.body,
            token=self.token,
            log_line=self.log_line,
            err_log_body=self.err_log_body,
        )

@dataclass
class AttemptState:
    """Mutable retry bookkeeping for one logical request (or one page of it)."""
    max_retry: int
    attempt: int = 0
    current_page: Optional[PageNumber] = None
    last_page: Optional[PageNumber] = None  # None means not yet known

    @property
    def can_retry(self) -> bool:
        return self.attempt < self.max_retry

# --- Pagination ---

LINK_RELATIONS = ("first", "prev", "next", "last")

@dataclass(frozen=True)
class PageLinkSet:
    """Page numbers of the relations advertised by a `Link` response header."""
    first: Optional[PageNumber] = None
    prev: Optional[PageNumber] = None
    next: Optional[PageNumber] = None
    last: Optional[PageNumber] = None

    @classmethod
    def from_links(cls, links: Dict[str, Dict[str, str]]) -> "PageLinkSet":
        """Builds the set from httpx's parsed `Response.links` mapping.

        Relations whose URL carries no integer `page` parameter are left unset.
        """
        pages: Dict[str, PageNumber] = {}
        for rel in LINK_RELATIONS:
            link = links.get(rel)
            if not link or "url" not in link:
                continue
            values = parse_qs(urlsplit(link["url"]).query).get("page")
            if not values:
                continue
            try:
                pages[rel] = PageNumber(int(values[0]))
            except ValueError:
                continue
        return cls(**pages)
