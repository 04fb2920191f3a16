"""
Grouping and sorting for the care view.

Turns the flat reminder list into display groups, either one group per plant
(with a watering and a fertilizing section) or one queue per care type.
Everything here is derived: the input list and its dicts are never modified.
"""

from __future__ import annotations
import math
from typing import Any, Dict, List
from leafy.constants import GROUP_MODES, SORT_MODES

# Section labels per grouping mode
_PLANT_SECTIONS = (
    ("water", "Hydration Schedule"),
    ("fertilizer", "Nutrition Schedule"),
)

_TYPE_GROUPS = (
    # (type, group id, title, section label, subtitle noun)
    ("water", "group-water", "Hydration Queue", "All Waterings", "water"),
    ("fertilizer", "group-fertilizer", "Nutrition Queue", "All Feedings", "fertilizer"),
)


def _earliest_due(reminders: List[Dict[str, Any]]) -> float:
    return min((r["next_due"] for r in reminders), default=math.inf)


def _finish_group(group: Dict[str, Any], now: int) -> Dict[str, Any]:
    tasks = [t for s in group["sections"] for t in s["tasks"]]
    group["earliest_due"] = _earliest_due(tasks)
    group["has_overdue"] = group["earliest_due"] < now
    group["total_tasks"] = len(tasks)
    return group


def group_by_plant(reminders: List[Dict[str, Any]], now: int) -> List[Dict[str, Any]]:
    """
    One group per plant_id, in order of first appearance.

    Both sections are always present (possibly empty); the view skips
    empty ones.
    """
    groups: Dict[str, Dict[str, Any]] = {}
    for reminder in reminders:
        group = groups.get(reminder["plant_id"])
        if group is None:
            group = {
                "id": reminder["plant_id"],
                "title": reminder["plant_name"],
                "subtitle": None,
                "sections": [
                    {"type": care_type, "label": label, "tasks": []}
                    for care_type, label in _PLANT_SECTIONS
                ],
            }
            groups[reminder["plant_id"]] = group

        section = 0 if reminder["type"] == "water" else 1
        group["sections"][section]["tasks"].append(reminder)

    return [_finish_group(g, now) for g in groups.values()]


def group_by_type(reminders: List[Dict[str, Any]], now: int) -> List[Dict[str, Any]]:
    """A watering queue and a fertilizing queue; a queue with no reminders is left out."""
    groups = []
    for care_type, group_id, title, label, noun in _TYPE_GROUPS:
        tasks = [r for r in reminders if r["type"] == care_type]
        if not tasks:
            continue
        groups.append(_finish_group({
            "id": group_id,
            "title": title,
            "subtitle": f"{len(tasks)} plants waiting for {noun}",
            "sections": [{"type": care_type, "label": label, "tasks": tasks}],
        }, now))
    return groups


def sort_groups(groups: List[Dict[str, Any]], sort_mode: str) -> List[Dict[str, Any]]:
    """
    Order groups by urgency (soonest earliest_due first) or by title.

    Returns a new list; ties keep their incoming order.
    """
    if sort_mode == "urgency":
        return sorted(groups, key=lambda g: g["earliest_due"])
    if sort_mode == "name":
        return sorted(groups, key=lambda g: (g["title"] or "").casefold())
    raise ValueError(f"Invalid sort mode: {sort_mode}")


def build_groups(
    reminders: List[Dict[str, Any]],
    group_mode: str,
    sort_mode: str,
    now: int,
) -> List[Dict[str, Any]]:
    """Group then sort. Unknown modes raise ValueError."""
    if group_mode not in GROUP_MODES:
        raise ValueError(f"Invalid group mode: {group_mode}")
    if sort_mode not in SORT_MODES:
        raise ValueError(f"Invalid sort mode: {sort_mode}")

    if group_mode == "plant":
        groups = group_by_plant(reminders, now)
    else:
        groups = group_by_type(reminders, now)
    return sort_groups(groups, sort_mode)
