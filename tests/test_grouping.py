"""Tests for leafy/services/grouping.py."""

import pytest
from conftest import NOW
from leafy.constants import DAY_MS
from leafy.services.grouping import build_groups, group_by_plant, group_by_type, sort_groups
from leafy.services.reminders import build_reminder


@pytest.fixture
def reminders():
    return [
        build_reminder("p-fern", "fern", "water", 3, now=NOW),
        build_reminder("p-monstera", "Monstera", "water", 7, now=NOW - 6 * DAY_MS),
        build_reminder("p-fern", "fern", "fertilizer", 30, now=NOW),
        build_reminder("p-cactus", "Cactus", "fertilizer", 60, now=NOW - 61 * DAY_MS),
        build_reminder("p-monstera", "Monstera", "fertilizer", 14, now=NOW),
    ]


def _ids(groups):
    return [t["id"] for g in groups for s in g["sections"] for t in s["tasks"]]


class TestGroupByPlant:
    def test_partition_covers_collection_once(self, reminders):
        groups = group_by_plant(reminders, NOW)
        ids = _ids(groups)
        assert sorted(ids) == sorted(r["id"] for r in reminders)
        assert len(ids) == len(set(ids))

    def test_each_reminder_in_its_plant_and_type_section(self, reminders):
        for group in group_by_plant(reminders, NOW):
            water, fertilizer = group["sections"]
            assert water["label"] == "Hydration Schedule"
            assert fertilizer["label"] == "Nutrition Schedule"
            assert all(t["type"] == "water" and t["plant_id"] == group["id"] for t in water["tasks"])
            assert all(t["type"] == "fertilizer" and t["plant_id"] == group["id"] for t in fertilizer["tasks"])

    def test_group_summary_fields(self, reminders):
        groups = {g["id"]: g for g in group_by_plant(reminders, NOW)}
        cactus = groups["p-cactus"]
        assert cactus["title"] == "Cactus"
        assert cactus["has_overdue"] is True
        assert cactus["total_tasks"] == 1
        assert groups["p-fern"]["earliest_due"] == NOW + 3 * DAY_MS
        assert groups["p-fern"]["has_overdue"] is False

    def test_input_untouched(self, reminders):
        before = [dict(r) for r in reminders]
        group_by_plant(reminders, NOW)
        assert reminders == before


class TestGroupByType:
    def test_types_never_mix(self, reminders):
        groups = {g["id"]: g for g in group_by_type(reminders, NOW)}
        water = groups["group-water"]["sections"][0]["tasks"]
        fertilizer = groups["group-fertilizer"]["sections"][0]["tasks"]
        assert all(t["type"] == "water" for t in water)
        assert all(t["type"] == "fertilizer" for t in fertilizer)
        assert len(water) + len(fertilizer) == len(reminders)

    def test_titles_and_subtitles(self, reminders):
        groups = {g["id"]: g for g in group_by_type(reminders, NOW)}
        assert groups["group-water"]["title"] == "Hydration Queue"
        assert groups["group-water"]["subtitle"] == "2 plants waiting for water"
        assert groups["group-fertilizer"]["sections"][0]["label"] == "All Feedings"
        assert groups["group-fertilizer"]["subtitle"] == "3 plants waiting for fertilizer"

    def test_empty_queue_left_out(self):
        only_water = [build_reminder("p1", "Fern", "water", 3, now=NOW)]
        assert [g["id"] for g in group_by_type(only_water, NOW)] == ["group-water"]

    def test_empty_collection(self):
        assert group_by_type([], NOW) == []
        assert group_by_plant([], NOW) == []


class TestSorting:
    def test_urgency_non_decreasing(self, reminders):
        for mode in ("plant", "type"):
            groups = build_groups(reminders, mode, "urgency", NOW)
            dues = [g["earliest_due"] for g in groups]
            assert dues == sorted(dues)

    def test_urgency_puts_overdue_first(self, reminders):
        groups = build_groups(reminders, "plant", "urgency", NOW)
        assert groups[0]["id"] == "p-cactus"

    def test_name_is_case_insensitive(self, reminders):
        groups = build_groups(reminders, "plant", "name", NOW)
        assert [g["title"] for g in groups] == ["Cactus", "fern", "Monstera"]

    def test_sort_returns_new_list(self, reminders):
        groups = group_by_plant(reminders, NOW)
        assert sort_groups(groups, "name") is not groups

    @pytest.mark.parametrize("group_mode, sort_mode", [("room", "urgency"), ("plant", "size")])
    def test_unknown_modes_raise(self, reminders, group_mode, sort_mode):
        with pytest.raises(ValueError):
            build_groups(reminders, group_mode, sort_mode, NOW)
