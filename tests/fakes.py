"""In-memory collaborators implementing the RiskSource and ListStore protocols."""

from typing import Dict, List, Optional

from risklist_sync.clients.base import ApiError
from risklist_sync.models.risk import ListItem, ListPage, RiskPage, RiskRecord, RiskTier

HIGH_ID = "11111111-1111-1111-1111-111111111111"
MEDIUM_ID = "22222222-2222-2222-2222-222222222222"
LOW_ID = "33333333-3333-3333-3333-333333333333"

LIST_IDS = {
    RiskTier.HIGH: HIGH_ID,
    RiskTier.MEDIUM: MEDIUM_ID,
    RiskTier.LOW: LOW_ID,
}


def record(identifier: str, tier: str) -> RiskRecord:
    return RiskRecord(identifier=identifier, tier=RiskTier(tier))


class FakeRiskSource:
    def __init__(self, records: Optional[List[RiskRecord]] = None, fail_on_page: Optional[int] = None):
        self.records = list(records or [])
        self.fail_on_page = fail_on_page
        self.never_ending = False
        self.calls: List[int] = []
        self.ping_status = 200

    def fetch_risk_page(self, page: int, page_size: int) -> RiskPage:
        self.calls.append(page)
        if page == self.fail_on_page:
            raise ApiError("boom", errors=[{"code": 10000, "message": "boom"}], status_code=500)
        start = (page - 1) * page_size
        total_pages = max(1, -(-len(self.records) // page_size))
        if self.never_ending:
            total_pages = page + 1
        return RiskPage(
            records=self.records[start:start + page_size],
            current_page=page,
            total_pages=total_pages,
        )

    def ping(self) -> int:
        return self.ping_status


class FakeListStore:
    def __init__(self, lists: Optional[Dict[str, List[str]]] = None):
        self.lists: Dict[str, Dict[str, Optional[str]]] = {
            list_id: {}
            for list_id in LIST_IDS.values()
        }
        for list_id, values in (lists or {}).items():
            self.lists[list_id] = {v: None for v in values}
        self.patches: List[dict] = []
        self.replacements: List[dict] = []
        self.created: List[dict] = []
        self.reject_patch_for: set = set()
        self.fail_fetch_for: Dict[str, int] = {}   # list_id -> failing page
        self.ignore_removals = False               # simulates a store that drops removals
        self.fetch_calls = 0
        self.ping_status = 200

    def members(self, list_id: str) -> set:
        return set(self.lists[list_id])

    def fetch_list_page(self, list_id: str, page: int, page_size: int) -> ListPage:
        self.fetch_calls += 1
        if self.fail_fetch_for.get(list_id) == page:
            raise ApiError("list read failed", status_code=500)
        values = sorted(self.lists[list_id])
        start = (page - 1) * page_size
        total_pages = max(1, -(-len(values) // page_size))
        return ListPage(
            items=[
                ListItem(value=v, description=self.lists[list_id][v])
                for v in values[start:start + page_size]
            ],
            current_page=page,
            total_pages=total_pages,
        )

    def apply_incremental(self, list_id: str, append: List[ListItem], remove: List[str]) -> None:
        if list_id in self.reject_patch_for:
            raise ApiError(
                "rejected",
                errors=[{"code": 1003, "message": "list is referenced by a policy"}],
                status_code=400,
            )
        self.patches.append({"list_id": list_id, "append": append, "remove": list(remove)})
        for item in append:
            self.lists[list_id][item.value] = item.description
        if not self.ignore_removals:
            for value in remove:
                self.lists[list_id].pop(value, None)

    def replace_all(self, list_id: str, name: str, description: str, items: List[ListItem]) -> None:
        self.replacements.append({"list_id": list_id, "name": name, "items": items})
        self.lists[list_id] = {item.value: item.description for item in items}

    def get_list(self, list_id: str) -> dict:
        return {"id": list_id, "name": f"List {list_id[:4]}", "description": "", "type": "EMAIL"}

    def create_list(self, name: str, description: str) -> dict:
        list_id = f"{len(self.created) + 4:08d}-0000-0000-0000-000000000000"
        self.created.append({"id": list_id, "name": name})
        self.lists[list_id] = {}
        return {"id": list_id, "name": name}

    def ping(self) -> int:
        return self.ping_status
