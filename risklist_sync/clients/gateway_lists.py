"""Gateway list client — the remote list store."""

from typing import List

from risklist_sync.clients.base import CloudflareClient, page_numbers
from risklist_sync.models.risk import ListItem, ListPage

LIST_TYPE = "EMAIL"


class GatewayListClient(CloudflareClient):
    """Reads and mutates Zero Trust Gateway lists."""

    def _list_path(self, list_id: str) -> str:
        return f"/gateway/lists/{list_id}"

    def fetch_list_page(self, list_id: str, page: int, page_size: int) -> ListPage:
        data = self._request(
            "GET",
            f"{self._list_path(list_id)}/items",
            params={"page": page, "per_page": page_size},
            headers={"Cache-Control": "no-cache"},
        )
        items = [
            ListItem(value=item["value"], description=item.get("description"))
            for item in (data.get("result") or [])
            if item.get("value")
        ]
        current_page, total_pages = page_numbers(data)
        return ListPage(items=items, current_page=current_page, total_pages=total_pages)

    def apply_incremental(
        self, list_id: str, append: List[ListItem], remove: List[str]
    ) -> None:
        """One combined PATCH carrying both additions and removals."""
        body = {}
        if append:
            body["append"] = [item.model_dump(exclude_none=True) for item in append]
        if remove:
            body["remove"] = list(remove)
        self._request("PATCH", self._list_path(list_id), json=body)

    def replace_all(
        self, list_id: str, name: str, description: str, items: List[ListItem]
    ) -> None:
        self._request(
            "PUT",
            self._list_path(list_id),
            json={
                "name": name,
                "description": description,
                "items": [item.model_dump(exclude_none=True) for item in items],
            },
        )

    def get_list(self, list_id: str) -> dict:
        data = self._request(
            "GET", self._list_path(list_id), headers={"Cache-Control": "no-cache"}
        )
        return data.get("result") or {}

    def create_list(self, name: str, description: str) -> dict:
        data = self._request(
            "POST",
            "/gateway/lists",
            json={"name": name, "description": description, "type": LIST_TYPE, "items": []},
        )
        return data.get("result") or {}
