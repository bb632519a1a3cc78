"""
Paginated Fetcher — retrieves complete collections across pages.

Pages are requested in increasing order from 1 until the source reports
current_page >= total_pages or the request safety bound is reached.

Failure policy differs by collection:
  - Risk scores: any page failure aborts the whole fetch (PaginationError).
    A half-fetched user set must never be applied.
  - List items: a page failure or the request safety bound stops pagination
    and returns what was collected, tagged with the error. A tagged result is authoritative only
    for what succeeded and must never be read as "the list is empty".
"""

import logging
import time
from typing import Callable, List, Optional

import httpx
from pydantic import BaseModel

from risklist_sync.clients.base import ApiError, ListStore, RiskSource
from risklist_sync.models.reconciler import ReconcilerConfig
from risklist_sync.models.risk import ListItem, RiskRecord

logger = logging.getLogger(__name__)


class PaginationError(Exception):
    """Raised when risk-score pagination aborts."""

    def __init__(self, message: str, partial_count: int = 0, errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.partial_count = partial_count
        self.errors = errors or [{"message": message}]


class PaginationInfo(BaseModel):
    total_items: int
    total_requests: int
    pages_processed: int


class RiskFetchResult(BaseModel):
    records: List[RiskRecord]
    pagination: PaginationInfo


class ListFetchResult(BaseModel):
    list_id: str
    items: List[ListItem]
    pagination: PaginationInfo
    error: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.error is None

    @property
    def identifiers(self) -> List[str]:
        return [item.value for item in self.items]


def _has_more(current_page: Optional[int], total_pages: Optional[int]) -> bool:
    if current_page is None or total_pages is None:
        return False
    return current_page < total_pages


class PaginatedFetcher:
    """Fetches whole collections from a RiskSource or ListStore."""

    def __init__(
        self,
        config: Optional[ReconcilerConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or ReconcilerConfig()
        self._sleep = sleep

    def fetch_risk_records(self, source: RiskSource) -> RiskFetchResult:
        """Fetch every risk record. Raises PaginationError on any page failure."""
        records: List[RiskRecord] = []
        page = 1
        requests = 0
        has_more = True

        while has_more and requests < self.config.risk_max_requests:
            requests += 1
            try:
                result = source.fetch_risk_page(page, self.config.risk_page_size)
            except ApiError as e:
                raise PaginationError(
                    f"Risk score page {page} failed: {e}",
                    partial_count=len(records),
                    errors=e.errors,
                ) from e
            except httpx.HTTPError as e:
                raise PaginationError(
                    f"Risk score page {page} failed: {e}",
                    partial_count=len(records),
                ) from e

            records.extend(result.records)
            has_more = _has_more(result.current_page, result.total_pages)
            page += 1
            if has_more:
                self._sleep(self.config.risk_page_delay_seconds)

        if has_more:
            logger.warning(
                "Risk score pagination stopped at safety bound of %d requests",
                self.config.risk_max_requests,
            )

        return RiskFetchResult(
            records=records,
            pagination=PaginationInfo(
                total_items=len(records),
                total_requests=requests,
                pages_processed=page - 1,
            ),
        )

    def fetch_list_items(self, store: ListStore, list_id: str) -> ListFetchResult:
        """Fetch every item of a remote list. Never raises for page failures."""
        items: List[ListItem] = []
        page = 1
        requests = 0
        has_more = True
        error: Optional[str] = None

        while has_more and requests < self.config.list_max_requests:
            requests += 1
            try:
                result = store.fetch_list_page(list_id, page, self.config.list_page_size)
            except (ApiError, httpx.HTTPError) as e:
                error = str(e)
                logger.error("Failed to fetch page %d of list %s: %s", page, list_id, e)
                break

            items.extend(result.items)
            has_more = _has_more(result.current_page, result.total_pages)
            page += 1
            if has_more:
                self._sleep(self.config.list_page_delay_seconds)

        if has_more and error is None:
            error = f"List read stopped at safety bound of {self.config.list_max_requests} requests"
            logger.warning("Truncated read of list %s: %s", list_id, error)

        return ListFetchResult(
            list_id=list_id,
            items=items,
            pagination=PaginationInfo(
                total_items=len(items),
                total_requests=requests,
                pages_processed=page - 1,
            ),
            error=error,
        )
