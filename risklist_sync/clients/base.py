"""
Collaborator contracts and shared Cloudflare API plumbing.

The reconciliation core only depends on the RiskSource and ListStore
protocols; the Cloudflare clients are one implementation of them.
"""

from typing import List, Optional, Protocol, Tuple

import httpx

from risklist_sync.models.risk import ListItem, ListPage, RiskPage
from risklist_sync.transport.retrying import RetryingTransport


class ApiError(Exception):
    """The remote API reported failure. Carries its errors verbatim."""

    def __init__(self, message: str, errors: Optional[List[dict]] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.errors = errors or [{"message": message}]
        self.status_code = status_code


class RiskSource(Protocol):
    """Paginated source of per-user risk classifications."""

    def fetch_risk_page(self, page: int, page_size: int) -> RiskPage: ...

    def ping(self) -> int: ...


class ListStore(Protocol):
    """External store of named sets of string identifiers."""

    def fetch_list_page(self, list_id: str, page: int, page_size: int) -> ListPage: ...

    def apply_incremental(
        self, list_id: str, append: List[ListItem], remove: List[str]
    ) -> None: ...

    def replace_all(
        self, list_id: str, name: str, description: str, items: List[ListItem]
    ) -> None: ...

    def get_list(self, list_id: str) -> dict: ...

    def create_list(self, name: str, description: str) -> dict: ...

    def ping(self) -> int: ...


class CloudflareClient:
    """Base for clients of account-scoped Cloudflare endpoints."""

    def __init__(self, transport: RetryingTransport, account_id: str):
        self.transport = transport
        self.account_id = account_id

    @property
    def account_path(self) -> str:
        return f"/accounts/{self.account_id}"

    def _request(self, method: str, path: str, **kwargs) -> dict:
        """Send a request and return the decoded envelope, raising ApiError on failure."""
        response = self.transport.request(method, f"{self.account_path}{path}", **kwargs)
        return parse_envelope(response)

    def ping(self) -> int:
        """Single-attempt reachability probe of the account endpoint."""
        response = self.transport.request("GET", self.account_path, max_attempts=1)
        return response.status_code


def parse_envelope(response: httpx.Response) -> dict:
    """Decode a {success, errors, result, result_info} envelope."""
    try:
        data = response.json()
    except ValueError:
        raise ApiError(
            f"HTTP {response.status_code}: response is not JSON",
            status_code=response.status_code,
        )

    if not isinstance(data, dict) or not data.get("success"):
        errors = data.get("errors") if isinstance(data, dict) else None
        raise ApiError(
            f"HTTP {response.status_code}: request failed",
            errors=errors or None,
            status_code=response.status_code,
        )
    return data


def page_numbers(data: dict) -> Tuple[Optional[int], Optional[int]]:
    """Extract (page, total_pages) from an envelope's result_info."""
    info = data.get("result_info") or {}
    return info.get("page"), info.get("total_pages")
