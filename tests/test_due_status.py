"""Tests for leafy/services/due_status.py."""

import pytest
from conftest import NOW, local_ms
from leafy.constants import DAY_MS
from leafy.services import due_status
from leafy.services.reminders import build_reminder


def test_scenario_progress_and_overdue():
    r = build_reminder("p1", "Fern", "water", 3, now=0)

    at_2_5_days = int(2.5 * DAY_MS)
    assert due_status.progress(r, at_2_5_days) == pytest.approx(83.33, abs=0.01)
    assert due_status.is_overdue(r, at_2_5_days) is False

    just_after = 3 * DAY_MS + 1
    assert due_status.is_overdue(r, just_after) is True
    assert due_status.day_difference(r, just_after) <= 0


def test_progress_is_clamped_and_monotonic():
    r = build_reminder("p1", "Fern", "water", 2, now=NOW)
    samples = [NOW - DAY_MS, NOW, NOW + DAY_MS // 3, NOW + DAY_MS, NOW + 2 * DAY_MS, NOW + 10 * DAY_MS]
    values = [due_status.progress(r, t) for t in samples]

    assert values[0] == 0
    assert values[-1] == 100
    assert all(0 <= v <= 100 for v in values)
    assert values == sorted(values)


def test_due_exactly_now_is_overdue():
    r = build_reminder("p1", "Fern", "water", 1, now=NOW)
    assert due_status.is_overdue(r, r["next_due"]) is True
    assert due_status.is_overdue(r, r["next_due"] - 1) is False


class TestDayDifference:
    def test_later_today_is_zero(self):
        r = build_reminder("p1", "Fern", "water", 1, now=local_ms(2024, 10, 14, 20))
        assert due_status.day_difference(r, local_ms(2024, 10, 15, 8)) == 0
        assert due_status.status_label(r, local_ms(2024, 10, 15, 8)) == "Due Today"

    def test_calendar_days_not_elapsed_hours(self):
        # Due at 08:00 tomorrow, asked at 23:00: only 9 hours away but one calendar day
        r = build_reminder("p1", "Fern", "water", 2, now=local_ms(2024, 10, 14, 8))
        now = local_ms(2024, 10, 15, 23)
        assert due_status.day_difference(r, now) == 1
        assert due_status.status_label(r, now) == "Due Tomorrow"

    def test_overdue_on_earlier_day_is_negative(self):
        r = build_reminder("p1", "Fern", "water", 1, now=local_ms(2024, 10, 13, 23))
        now = local_ms(2024, 10, 15, 1)
        assert due_status.is_overdue(r, now)
        assert due_status.day_difference(r, now) == -1
        assert due_status.status_label(r, now) == "Overdue by 1 day"

    def test_overdue_iff_negative_across_days(self):
        r = build_reminder("p1", "Fern", "water", 3, now=NOW)
        for offset in range(-5, 6):
            now = r["next_due"] + offset * DAY_MS
            if offset != 0:
                assert due_status.is_overdue(r, now) == (due_status.day_difference(r, now) < 0)


@pytest.mark.parametrize("days_ahead, label", [
    (-3, "Overdue by 3 days"),
    (0, "Due Today"),
    (1, "Due Tomorrow"),
    (5, "Due in 5 days"),
])
def test_status_labels(days_ahead, label):
    r = build_reminder("p1", "Fern", "water", 10, now=NOW)
    now = r["next_due"] - days_ahead * DAY_MS
    assert due_status.status_label(r, now) == label


def test_scheduled_label():
    r = build_reminder("p1", "Fern", "water", 6, now=local_ms(2024, 10, 15, 12))
    assert due_status.scheduled_label(r) == "Oct 21"


def test_history_log_sorted_newest_first():
    r = build_reminder("p1", "Fern", "water", 6, now=NOW)
    r["history"] = [NOW - 2, NOW, NOW - 1]
    assert due_status.history_log(r) == [NOW, NOW - 1, NOW - 2]


def test_history_log_falls_back_to_last_done():
    r = build_reminder("p1", "Fern", "water", 6, now=NOW)
    r["history"] = []
    assert due_status.history_log(r) == [NOW]


def test_task_view_does_not_modify_reminder():
    r = build_reminder("p1", "Fern", "water", 4, now=NOW)
    before = dict(r)
    view = due_status.task_view(r, NOW + DAY_MS)

    assert r == before
    assert view["progress"] == 25
    assert view["is_overdue"] is False
    assert view["days_until_due"] == 3
    assert view["status_label"] == "Due in 3 days"
