"""
Reminder routes for plant care scheduling.

JSON endpoints for the care view: the grouped task list, creating reminders
from a journal entry, and the complete / edit interval / history / delete
flows, which all go through the interaction controller.

Security: CSRF token required via X-CSRFToken header on every mutation
(automatically validated by Flask-WTF CSRFProtect)
"""

from __future__ import annotations
from flask import Blueprint, current_app, request, jsonify
from leafy.constants import REMINDER_TYPE_NAMES
from leafy.utils.validation import is_valid_uuid, validate_reminder_request
from leafy.utils.errors import json_error, log_info, GENERIC_MESSAGES
from leafy.services.interaction import get_controller
from leafy.services.journal import get_journal
from leafy.services.reminders import build_reminder, get_repository

reminders_bp = Blueprint("reminders", __name__, url_prefix="/reminders")


def _busy_or_missing(reminder_id: str):
    """Error response for an action the controller ignored."""
    if get_repository().get(reminder_id) is None:
        return json_error("Reminder not found", 404)
    return json_error("This reminder is busy. Try again in a moment.", 409)


def _delete_prompt(reminder) -> str:
    care = REMINDER_TYPE_NAMES.get(reminder["type"], reminder["type"])
    return (
        f"Are you sure you want to stop tracking {care} for {reminder['plant_name']}? "
        "Your history for this schedule will be lost."
    )


@reminders_bp.route("/api/", methods=["GET"])
def api_index():
    """
    Grouped care view.

    Query params:
        group: "plant" | "type" (remembered for later requests)
        sort: "urgency" | "name" (remembered for later requests)
    """
    controller = get_controller()

    try:
        if request.args.get("group"):
            controller.set_group_mode(request.args["group"])
        if request.args.get("sort"):
            controller.set_sort_mode(request.args["sort"])
    except ValueError as e:
        return json_error(str(e), 400)

    return jsonify({"success": True, **controller.view()})


@reminders_bp.route("/api/", methods=["POST"])
def api_create():
    """
    Start tracking a care task for an identified plant.

    Request body:
        {
            "plant_id": "k2x9a7b1c",
            "type": "water" | "fertilizer",
            "interval_days": 7  // optional, defaults to the plant's suggestion
        }
    """
    payload, error = validate_reminder_request(request.get_json(silent=True))
    if error:
        return json_error(error, 400)

    plant = get_journal().get_entry(payload["plant_id"])
    if plant is None:
        return json_error(GENERIC_MESSAGES["not_found"], 404)
    if not plant.get("is_plant"):
        return json_error("Reminders can only be set for plants.", 400)

    repository = get_repository()
    if repository.has_reminder(plant["id"], payload["type"]):
        return json_error("This plant already has that reminder.", 409)

    interval = payload["interval_days"]
    if interval is None:
        care = plant.get("care") or {}
        key = "suggested_water_days" if payload["type"] == "water" else "suggested_fertilize_days"
        interval = care.get(key) or 0
        if not isinstance(interval, int) or interval < 1:
            return json_error("No suggested interval for this plant. Please choose one.", 400)

    reminder = repository.add(build_reminder(plant["id"], plant["common_name"], payload["type"], interval))
    if reminder is None:
        return json_error(GENERIC_MESSAGES["validation"], 400)

    log_info("Reminder created", plant_id=plant["id"], type=payload["type"], interval_days=interval)
    return jsonify({"success": True, "reminder": reminder}), 201


@reminders_bp.route("/api/pending-count", methods=["GET"])
def api_pending_count():
    """Number of overdue reminders (navigation badge)."""
    return jsonify({"success": True, "count": get_repository().pending_count()})


@reminders_bp.route("/api/<reminder_id>/complete", methods=["POST"])
def api_complete(reminder_id):
    """
    Mark a reminder done.

    The repository update is applied after the completion delay; until then
    the task shows "Well Done!" and ignores further actions.
    """
    if not is_valid_uuid(reminder_id):
        return json_error("Invalid reminder ID", 400)

    controller = get_controller()
    if not controller.request_complete(reminder_id):
        return _busy_or_missing(reminder_id)

    return jsonify({
        "success": True,
        "message": "Well Done!",
        "completing": reminder_id in controller.completing,
        "reminder": get_repository().get(reminder_id),
    })


@reminders_bp.route("/api/<reminder_id>/cancel-complete", methods=["POST"])
def api_cancel_complete(reminder_id):
    if not is_valid_uuid(reminder_id):
        return json_error("Invalid reminder ID", 400)

    if not get_controller().cancel_complete(reminder_id):
        return json_error("Nothing to cancel. The reminder was already updated.", 409)
    return jsonify({"success": True, "message": "Completion cancelled"})


@reminders_bp.route("/api/<reminder_id>/edit", methods=["POST"])
def api_start_edit(reminder_id):
    """Open the interval editor for a reminder (closes any other editor)."""
    if not is_valid_uuid(reminder_id):
        return json_error("Invalid reminder ID", 400)

    controller = get_controller()
    if not controller.start_editing(reminder_id):
        return _busy_or_missing(reminder_id)
    return jsonify({"success": True, "editing": {"id": controller.editing_id, "value": controller.edit_value}})


@reminders_bp.route("/api/edit", methods=["PUT"])
def api_save_edit():
    """
    Save the open interval editor.

    Request body:
        {"value": "10"}

    An invalid value keeps the editor open so the user can correct it.
    """
    controller = get_controller()
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return json_error("Invalid request body", 400)
    editing_id = controller.editing_id

    if editing_id is None:
        return json_error("No reminder is being edited.", 409)

    if controller.save_edit(data.get("value")):
        return jsonify({"success": True, "reminder": get_repository().get(editing_id)})

    if controller.editing_id is not None:
        current_app.logger.info(f"Rejected interval value for {editing_id}: {controller.edit_value!r}")
        return json_error("Interval must be a whole number of days greater than zero.", 400)
    return json_error("Reminder not found", 404)


@reminders_bp.route("/api/edit", methods=["DELETE"])
def api_cancel_edit():
    get_controller().cancel_editing()
    return jsonify({"success": True})


@reminders_bp.route("/api/<reminder_id>/history", methods=["POST"])
def api_toggle_history(reminder_id):
    """Expand or collapse a reminder's care log."""
    if not is_valid_uuid(reminder_id):
        return json_error("Invalid reminder ID", 400)

    reminder = get_repository().get(reminder_id)
    if reminder is None:
        return json_error("Reminder not found", 404)

    expanded = get_controller().toggle_history(reminder_id)
    return jsonify({"success": True, "expanded": expanded, "history": reminder.get("history") or []})


@reminders_bp.route("/api/<reminder_id>/delete", methods=["POST"])
def api_request_delete(reminder_id):
    """Ask for confirmation before removing a reminder."""
    if not is_valid_uuid(reminder_id):
        return json_error("Invalid reminder ID", 400)

    reminder = get_controller().request_delete(reminder_id)
    if reminder is None:
        return _busy_or_missing(reminder_id)
    return jsonify({"success": True, "pending_delete": reminder, "prompt": _delete_prompt(reminder)})


@reminders_bp.route("/api/delete/confirm", methods=["POST"])
def api_confirm_delete():
    controller = get_controller()
    pending = controller.pending_delete
    if pending is None:
        return json_error("Nothing to delete.", 409)

    if not controller.confirm_delete():
        return json_error("Reminder not found", 404)

    log_info("Reminder deleted", reminder_id=pending["id"], plant_id=pending["plant_id"])
    return jsonify({"success": True, "message": "Reminder removed"})


@reminders_bp.route("/api/delete", methods=["DELETE"])
def api_cancel_delete():
    get_controller().cancel_delete()
    return jsonify({"success": True})
