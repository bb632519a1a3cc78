"""Creation of fresh per-tier lists in the remote store."""

import logging
from typing import List

import httpx

from risklist_sync.clients.base import ApiError, ListStore

logger = logging.getLogger(__name__)

NEW_LISTS = [
    ("High Risk Users - New", "New high risk users list (not protected by policies)"),
    ("Medium Risk Users - New", "New medium risk users list (not protected by policies)"),
    ("Low Risk Users - New", "New low risk users list (not protected by policies)"),
]


def provision_lists(list_store: ListStore) -> List[dict]:
    """Create the three tier lists. Returns one outcome per list."""
    results = []
    for name, description in NEW_LISTS:
        try:
            created = list_store.create_list(name, description)
        except (ApiError, httpx.HTTPError) as e:
            logger.error("Failed to create list %r: %s", name, e)
            results.append({
                "name": name,
                "success": False,
                "list_id": None,
                "errors": getattr(e, "errors", [{"message": str(e)}]),
            })
            continue
        logger.info("Created list %r with id %s", name, created.get("id"))
        results.append({
            "name": name,
            "success": True,
            "list_id": created.get("id"),
            "errors": [],
        })
    return results
