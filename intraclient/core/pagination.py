"""Fetches every page of a paginated collection.

Page 1 is requested first; its `Link` header tells how many pages exist.
Pages 2..last are then requested concurrently (all still queued through the
shared rate gate) and the items are concatenated in page order.
"""

import asyncio
import logging
import math
from typing import Any, Iterable, List, Optional

import httpx

from intraclient.domain.models.common import PageNumber
from intraclient.domain.models.request import AttemptState, PageLinkSet, RequestIntent
from intraclient.infrastructure.http.transport import decode_body
from intraclient.infrastructure.resilience.api_retry import ApiRetryService

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 100


class PaginationMetadataMissing(Exception):
    """The first page carries no usable `rel="last"` link: it is the only page."""


class PaginatedItems(list):
    """Items of every fetched page, in page order.

    `failed_pages` lists the pages whose request failed and was swallowed
    (non-throwing clients only); those pages contribute no items.
    """

    def __init__(self, items: Iterable[Any] = (), failed_pages: Iterable[int] = ()):
        super().__init__(items)
        self.failed_pages: List[int] = list(failed_pages)

    @property
    def complete(self) -> bool:
        return not self.failed_pages


def get_last_page(response: httpx.Response) -> PageNumber:
    """Reads the last page number from the response's `Link` header.

    Raises:
        PaginationMetadataMissing: If there is no header or no parsable
            `rel="last"` relation.
    """
    if "link" not in response.headers:
        raise PaginationMetadataMissing("No Link header")
    links = PageLinkSet.from_links(response.links)
    if links.last is None:
        raise PaginationMetadataMissing(f"No last page in Link header: {response.headers['link']!r}")
    return links.last


def _page_items(body: Any) -> List[Any]:
    if body is None:
        return []
    if isinstance(body, list):
        return body
    return [body]


class PaginationOrchestrator:
    """Fans a "fetch all" call out into concurrent page requests."""

    def __init__(self, dispatcher: ApiRetryService):
        self.dispatcher = dispatcher

    async def fetch_all(
        self,
        intent: RequestIntent,
        max_retry: int,
        per_page: int = DEFAULT_PER_PAGE,
        max_pages: Optional[int] = None,
    ) -> Optional[PaginatedItems]:
        """Fetches every page of `intent` and returns the merged items.

        Args:
            intent: The collection request (method is normally GET).
            max_retry: Retries allowed per page request.
            per_page: Page size sent as `per_page`.
            max_pages: Upper bound on the number of pages fetched.

        Returns:
            The items in ascending page order, or None if page 1 failed on a
            non-throwing client.
        """
        if per_page < 1:
            raise ValueError("per_page must be at least 1")
        page_cap = math.inf if max_pages is None else max_pages

        first_state = AttemptState(max_retry=max_retry, current_page=PageNumber(1))
        first = await self.dispatcher.send(intent.with_query(page=1, per_page=per_page), first_state)
        if first is None:
            return None
        first_items = _page_items(decode_body(first))

        try:
            reported_last = get_last_page(first)
        except PaginationMetadataMissing as e:
            logger.debug(f"Single page result for {intent.url}: {e}")
            return PaginatedItems(first_items)

        last_page = int(min(reported_last, page_cap))
        if last_page < 2:
            return PaginatedItems(first_items)

        logger.debug(f"Fetching pages 2..{last_page} of {intent.url} (server reports {reported_last})")
        pages = range(2, last_page + 1)
        responses = await asyncio.gather(*(
            self.dispatcher.send(
                intent.with_query(page=page, per_page=per_page),
                AttemptState(max_retry=max_retry, current_page=PageNumber(page), last_page=PageNumber(last_page)),
            )
            for page in pages
        ))

        items = PaginatedItems(first_items)
        # gather preserves input order, so zip pairs each response with its page
        for page, response in zip(pages, responses):
            if response is None:
                items.failed_pages.append(page)
                continue
            items.extend(_page_items(decode_body(response)))

        if items.failed_pages:
            logger.warning(f"Pages {items.failed_pages} of {intent.url} failed; result is partial.")
        return items
