"""Improvement backlog tracking.

Two documents under ``project-state/improvements/``: the selected backlog
(items grouped into improvement sprints) and the deferred list.
"""

import copy
import logging
from typing import Any

from dashboard import config, store
from dashboard.errors import NotFoundError, StoreError, ValidationError

logger = logging.getLogger("agile-dashboard.improvements")

DEFAULT_ESTIMATED_HOURS = 8
SPRINT_CAPACITY_HOURS = 80

EMPTY_BACKLOG = {
    "items": [],
    "sprints": [],
    "metadata": {"total_items": 0, "estimated_sprints": 0},
}

EMPTY_DEFERRED = {
    "deferred_improvements": [],
    "metadata": {"last_reviewed": None, "total_deferred": 0, "next_review": None},
}


def get_backlog() -> dict[str, Any]:
    return store.read_json_or_default(config.backlog_path(), EMPTY_BACKLOG)


def get_deferred() -> dict[str, Any]:
    return store.read_json_or_default(config.deferred_path(), EMPTY_DEFERRED)


def update_status(improvement_id: str | None, status: str | None) -> dict[str, Any]:
    """Set an item's status. Starting work on an item activates its planned sprint."""
    if not improvement_id or not status:
        raise ValidationError("Missing required fields")

    updated: dict[str, Any] = {}

    def _apply(backlog: dict[str, Any]) -> None:
        item = next((i for i in backlog.get("items", []) if i.get("id") == improvement_id), None)
        if item is None:
            raise NotFoundError("Improvement not found")

        item["status"] = status

        if status == "in_progress":
            sprint = next(
                (s for s in backlog.get("sprints", []) if improvement_id in s.get("items", [])),
                None,
            )
            if sprint and sprint.get("status") == "planned":
                sprint["status"] = "active"
                logger.info(f"Sprint {sprint.get('id')} activated by {improvement_id}")

        updated.update(item)

    store.update_json(config.backlog_path(), _apply)
    logger.info(f"Improvement {improvement_id} -> {status}")
    return updated


def _assign_to_sprint(backlog: dict[str, Any], backlog_item: dict[str, Any]) -> None:
    sprints = backlog.setdefault("sprints", [])
    last_sprint = sprints[-1] if sprints else None

    if last_sprint and last_sprint.get("estimated_hours", 0) + DEFAULT_ESTIMATED_HOURS <= SPRINT_CAPACITY_HOURS:
        last_sprint.setdefault("items", []).append(backlog_item["id"])
        last_sprint["estimated_hours"] = last_sprint.get("estimated_hours", 0) + DEFAULT_ESTIMATED_HOURS
        backlog_item["sprint_id"] = last_sprint.get("id")
        return

    number = len(sprints) + 1
    new_sprint = {
        "id": f"sprint-improvement-{number}",
        "name": f"Improvement Sprint {number}",
        "items": [backlog_item["id"]],
        "estimated_hours": DEFAULT_ESTIMATED_HOURS,
        "start_date": None,
        "status": "planned",
    }
    sprints.append(new_sprint)
    backlog_item["sprint_id"] = new_sprint["id"]


def move_to_backlog(improvement_id: str | None) -> dict[str, Any]:
    """Promote a deferred improvement into the backlog and schedule it.

    The item lands at the end of the backlog with a default 8 hour estimate,
    in the last sprint if it still has capacity, otherwise in a new sprint.
    """
    if not improvement_id:
        raise ValidationError("Missing improvement ID")

    deferred_path, backlog_path = config.deferred_path(), config.backlog_path()
    with store.locked(deferred_path, backlog_path):
        backlog_item = _move(improvement_id, deferred_path, backlog_path)

    logger.info(f"Moved deferred improvement {improvement_id} to {backlog_item['sprint_id']}")
    return backlog_item


def _move(improvement_id: str, deferred_path, backlog_path) -> dict[str, Any]:
    deferred = store.read_json(deferred_path)
    items = deferred.get("deferred_improvements", [])
    index = next((n for n, i in enumerate(items) if i.get("id") == improvement_id), None)
    if index is None:
        raise NotFoundError("Deferred item not found")

    item = items.pop(index)
    deferred.setdefault("metadata", {})["total_deferred"] = len(items)

    backlog = store.read_json(backlog_path)
    backlog_items = backlog.setdefault("items", [])
    backlog_item = {
        "id": item.get("id"),
        "title": item.get("title"),
        "description": item.get("description"),
        "priority": len(backlog_items) + 1,
        "category": item.get("category"),
        "estimated_hours": DEFAULT_ESTIMATED_HOURS,
        "status": "todo",
        "sprint_id": None,
        "dependencies": [],
    }
    backlog_items.append(backlog_item)
    backlog.setdefault("metadata", {})["total_items"] = len(backlog_items)
    _assign_to_sprint(backlog, backlog_item)

    store.write_json(deferred_path, deferred)
    store.write_json(backlog_path, backlog)
    return backlog_item


def _read_for_statistics(path, empty: dict[str, Any]) -> dict[str, Any]:
    try:
        return store.read_json_or_default(path, empty)
    except StoreError as e:
        logger.warning(f"Counting unreadable {path.name} as empty: {e}")
        return copy.deepcopy(empty)


def get_statistics() -> dict[str, Any]:
    """Counts across backlog and deferred list. Missing or corrupt documents count as empty."""
    backlog = _read_for_statistics(config.backlog_path(), {"items": [], "sprints": []})
    deferred = _read_for_statistics(config.deferred_path(), {"deferred_improvements": []})

    items = backlog.get("items", [])
    sprints = backlog.get("sprints", [])
    deferred_items = deferred.get("deferred_improvements", [])

    def _count(collection, key, value):
        return sum(1 for entry in collection if entry.get(key) == value)

    stats = {
        "total_identified": len(items) + len(deferred_items),
        "total_selected": len(items),
        "total_deferred": len(deferred_items),
        "completed": _count(items, "status", "completed"),
        "in_progress": _count(items, "status", "in_progress"),
        "todo": _count(items, "status", "todo"),
        "blocked": _count(items, "status", "blocked"),
        "sprints_total": len(sprints),
        "sprints_completed": _count(sprints, "status", "completed"),
        "sprints_active": _count(sprints, "status", "active"),
        "critical_deferred": _count(deferred_items, "category", "critical_security"),
        "by_category": {},
    }

    selected_ids = {i.get("id") for i in items}
    for item in items + deferred_items:
        bucket = stats["by_category"].setdefault(
            item.get("category"), {"selected": 0, "deferred": 0, "completed": 0}
        )
        if item.get("id") in selected_ids:
            bucket["selected"] += 1
            if item.get("status") == "completed":
                bucket["completed"] += 1
        else:
            bucket["deferred"] += 1

    return stats
