"""
Flask CLI commands for checking and completing care tasks from a terminal.

Usage:
    flask list-reminders              # Every reminder with its status
    flask list-reminders --overdue    # Only the ones that are overdue
    flask complete-reminder <id>      # Mark a reminder done right now
"""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from leafy.constants import REMINDER_TYPE_NAMES


@click.command("list-reminders")
@click.option("--overdue", is_flag=True, default=False,
              help="Only show reminders that are overdue.")
@with_appcontext
def list_reminders_command(overdue: bool) -> None:
    """List reminders, most urgent first."""
    from leafy.services import due_status
    from leafy.services.reminders import get_repository, now_ms

    now = now_ms()
    reminders = sorted(get_repository().all(), key=lambda r: r["next_due"])
    if overdue:
        reminders = [r for r in reminders if due_status.is_overdue(r, now)]

    if not reminders:
        click.echo("No overdue reminders." if overdue else "No reminders yet.")
        return

    for reminder in reminders:
        care = REMINDER_TYPE_NAMES.get(reminder["type"], reminder["type"])
        click.echo(
            f"{reminder['id']}  {reminder['plant_name']:<24} {care:<12} "
            f"every {reminder['interval_days']}d  {due_status.status_label(reminder, now)}"
        )

    click.echo(f"\n{len(reminders)} reminder(s).")


@click.command("complete-reminder")
@click.argument("reminder_id")
@with_appcontext
def complete_reminder_command(reminder_id: str) -> None:
    """Mark a reminder done now (no completion delay)."""
    from leafy.services import due_status
    from leafy.services.reminders import get_repository, now_ms

    reminder = get_repository().complete(reminder_id)
    if reminder is None:
        click.echo(f"Error: no reminder with id {reminder_id}.")
        raise SystemExit(1)

    care = REMINDER_TYPE_NAMES.get(reminder["type"], reminder["type"])
    click.echo(
        f"Logged {care} for {reminder['plant_name']}. "
        f"Next: {due_status.scheduled_label(reminder)} ({due_status.status_label(reminder, now_ms())})."
    )
