"""
Interaction state for the care view.

Sits between user actions and the ReminderRepository and keeps the state the
repository does not own:

- completing: ids whose completion animation is playing; the repository
  update is applied after COMPLETION_DELAY_SECONDS by a scheduler job and the
  item is locked in the meantime
- editing: the single reminder whose interval is open for editing, with the
  provisional value typed so far
- history: the single reminder whose care log is expanded
- pending delete: the reminder waiting for delete confirmation
- grouping and sort mode for the view
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Callable
import atexit
import logging
import threading
from flask import current_app
from leafy.constants import GROUP_MODES, SORT_MODES
from leafy.services import due_status
from leafy.services.grouping import build_groups
from leafy.services.reminders import ReminderRepository, now_ms, parse_interval

logger = logging.getLogger(__name__)


class ReminderController:
    """
    Orchestrates complete/edit/delete flows against a ReminderRepository.

    Args:
        repository: The reminder repository (only mutator of reminders)
        scheduler: APScheduler-style object with add_job/remove_job; when
            None, or when the delay is 0, completions apply immediately
        completion_delay: Seconds between a complete request and the commit
        clock: Returns the current time in epoch ms
    """

    def __init__(
        self,
        repository: ReminderRepository,
        scheduler=None,
        completion_delay: float = 1.0,
        clock: Callable[[], int] = now_ms,
    ):
        self.repository = repository
        self.scheduler = scheduler
        self.completion_delay = completion_delay
        self.clock = clock
        self._lock = threading.RLock()

        self.completing: set[str] = set()
        self.editing_id: Optional[str] = None
        self.edit_value: str = ""
        self.save_success_id: Optional[str] = None
        self.expanded_history_id: Optional[str] = None
        self.pending_delete: Optional[Dict[str, Any]] = None
        self.group_mode = "plant"
        self.sort_mode = "urgency"

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    @staticmethod
    def _job_id(reminder_id: str) -> str:
        return f"complete:{reminder_id}"

    def request_complete(self, reminder_id: str) -> bool:
        """
        Start the completion of a reminder.

        Ignored (returns False) for unknown ids, items already completing,
        and the item being edited.
        """
        with self._lock:
            if reminder_id in self.completing or reminder_id == self.editing_id:
                return False
            if self.repository.get(reminder_id) is None:
                return False
            self.completing.add(reminder_id)

        if self.scheduler is None or self.completion_delay <= 0:
            self.commit_completion(reminder_id)
            return True

        self.scheduler.add_job(
            func=self.commit_completion,
            trigger="date",
            run_date=datetime.now() + timedelta(seconds=self.completion_delay),
            args=[reminder_id],
            id=self._job_id(reminder_id),
            name=f"Complete reminder {reminder_id}",
            replace_existing=True,
        )
        return True

    def commit_completion(self, reminder_id: str) -> Optional[Dict[str, Any]]:
        """
        Apply a pending completion to the repository.

        Only acts while the id is still marked completing, so a job that
        fires after a cancel or a second time does nothing.
        """
        with self._lock:
            if reminder_id not in self.completing:
                return None
            self.completing.discard(reminder_id)
            return self.repository.complete(reminder_id, self.clock())

    def cancel_complete(self, reminder_id: str) -> bool:
        """Drop a pending completion before it is applied."""
        with self._lock:
            if reminder_id not in self.completing:
                return False
            self.completing.discard(reminder_id)
        self._remove_job(reminder_id)
        return True

    def _remove_job(self, reminder_id: str) -> None:
        if self.scheduler is None:
            return
        from apscheduler.jobstores.base import JobLookupError
        try:
            self.scheduler.remove_job(self._job_id(reminder_id))
        except JobLookupError:
            pass  # Already ran or never scheduled

    def shutdown(self) -> int:
        """Apply every pending completion now. Returns how many were applied."""
        with self._lock:
            pending = list(self.completing)
        applied = 0
        for reminder_id in pending:
            self._remove_job(reminder_id)
            if self.commit_completion(reminder_id) is not None:
                applied += 1
        if applied:
            logger.info(f"Applied {applied} pending completion(s) on shutdown")
        return applied

    # ------------------------------------------------------------------
    # Interval editing
    # ------------------------------------------------------------------

    def start_editing(self, reminder_id: str) -> bool:
        """Open the interval editor for one reminder, closing any other."""
        with self._lock:
            if reminder_id in self.completing:
                return False
            reminder = self.repository.get(reminder_id)
            if reminder is None:
                return False
            self.editing_id = reminder_id
            self.edit_value = str(reminder["interval_days"])
            self.save_success_id = None
            return True

    def set_edit_value(self, value: Any) -> bool:
        with self._lock:
            if self.editing_id is None:
                return False
            self.edit_value = "" if value is None else str(value)
            return True

    def save_edit(self, value: Any = None) -> bool:
        """
        Commit the provisional interval.

        An invalid value leaves the editor open with the value as typed.
        """
        with self._lock:
            if self.editing_id is None:
                return False
            if value is not None:
                self.edit_value = str(value)

            interval = parse_interval(self.edit_value)
            if interval is None:
                return False

            reminder_id = self.editing_id
            updated = self.repository.update_interval(reminder_id, interval)
            self.editing_id = None
            self.edit_value = ""
            if updated is None:
                # Reminder disappeared while the editor was open
                return False
            self.save_success_id = reminder_id
            return True

    def cancel_editing(self) -> None:
        with self._lock:
            self.editing_id = None
            self.edit_value = ""

    # ------------------------------------------------------------------
    # History log and deletion
    # ------------------------------------------------------------------

    def toggle_history(self, reminder_id: str) -> bool:
        """Expand a reminder's care log (collapsing any other) or collapse it. Returns the new state."""
        with self._lock:
            if self.expanded_history_id == reminder_id:
                self.expanded_history_id = None
                return False
            self.expanded_history_id = reminder_id
            return True

    def request_delete(self, reminder_id: str) -> Optional[Dict[str, Any]]:
        """Hold a reminder for deletion; nothing is removed until confirm_delete()."""
        with self._lock:
            if reminder_id in self.completing:
                return None
            reminder = self.repository.get(reminder_id)
            if reminder is None:
                return None
            self.pending_delete = reminder
            return reminder

    def confirm_delete(self) -> bool:
        with self._lock:
            if self.pending_delete is None:
                return False
            reminder_id = self.pending_delete["id"]
            self.pending_delete = None
            removed = self.repository.remove(reminder_id)
            if self.editing_id == reminder_id:
                self.editing_id = None
                self.edit_value = ""
            if self.expanded_history_id == reminder_id:
                self.expanded_history_id = None
            return removed

    def cancel_delete(self) -> None:
        with self._lock:
            self.pending_delete = None

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def set_group_mode(self, mode: str) -> None:
        if mode not in GROUP_MODES:
            raise ValueError(f"Invalid group mode: {mode}")
        self.group_mode = mode

    def set_sort_mode(self, mode: str) -> None:
        if mode not in SORT_MODES:
            raise ValueError(f"Invalid sort mode: {mode}")
        self.sort_mode = mode

    def _task(self, reminder: Dict[str, Any], now: int) -> Dict[str, Any]:
        task = due_status.task_view(reminder, now)
        is_completing = reminder["id"] in self.completing
        if is_completing:
            task["status_label"] = "Well Done!"
            task["progress"] = 100
        task["is_completing"] = is_completing
        task["is_editing"] = reminder["id"] == self.editing_id
        task["history_expanded"] = reminder["id"] == self.expanded_history_id
        return task

    def view(self, now: Optional[int] = None) -> Dict[str, Any]:
        """Grouped, sorted reminders with per-task status and interaction flags."""
        now = self.clock() if now is None else now
        reminders = self.repository.all()

        with self._lock:
            groups = []
            for group in build_groups(reminders, self.group_mode, self.sort_mode, now):
                sections = [
                    {**section, "tasks": [self._task(r, now) for r in section["tasks"]]}
                    for section in group["sections"]
                    if section["tasks"]
                ]
                groups.append({**group, "sections": sections})

            return {
                "group_mode": self.group_mode,
                "sort_mode": self.sort_mode,
                "total": len(reminders),
                "pending_count": self.repository.pending_count(now),
                "groups": groups,
                "editing": {"id": self.editing_id, "value": self.edit_value} if self.editing_id else None,
                "pending_delete": self.pending_delete,
                "expanded_history_id": self.expanded_history_id,
            }


def get_controller() -> ReminderController:
    """Return the controller registered on the current app."""
    return current_app.extensions["leafy_controller"]


def init_controller(app, repository: ReminderRepository) -> ReminderController:
    """
    Create the interaction controller and, outside of tests, the background
    scheduler that applies deferred completions.
    """
    delay = float(app.config.get("COMPLETION_DELAY_SECONDS", 1.0))
    scheduler = None

    if not app.config.get("TESTING", False) and delay > 0:
        try:
            from apscheduler.schedulers.background import BackgroundScheduler
            scheduler = BackgroundScheduler()
            scheduler.start()
            app.logger.info(f"[Scheduler] Deferred completions enabled ({delay:.1f}s delay)")
        except Exception as e:
            app.logger.warning(f"[Scheduler] Failed to start, completions apply immediately: {e}")
            scheduler = None

    controller = ReminderController(repository, scheduler=scheduler, completion_delay=delay)
    app.extensions["leafy_controller"] = controller

    if scheduler is not None:
        def _shutdown():
            controller.shutdown()
            scheduler.shutdown(wait=False)

        atexit.register(_shutdown)

    return controller
