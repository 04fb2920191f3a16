"""
Plant identification and journal routes.

Handles:
- Photo upload and identification (result saved to the journal)
- Listing, viewing and deleting journal entries
"""

from __future__ import annotations
from flask import Blueprint, request, current_app, jsonify
from leafy.constants import REMINDER_TYPES
from leafy.utils.file_upload import validate_upload_file, create_image_versions, to_data_url
from leafy.utils.validation import is_valid_entry_id
from leafy.utils.errors import sanitize_error, json_error, GENERIC_MESSAGES
from leafy.services import ai
from leafy.services.journal import get_journal
from leafy.services.reminders import get_repository
from leafy.extensions import limiter


plants_bp = Blueprint("plants", __name__, url_prefix="/plants")


def _identify_rate():
    return current_app.config.get("RATELIMIT_IDENTIFY", "10 per minute")


def _with_tracking(entry):
    """Journal entry plus which care types already have a reminder."""
    reminders = get_repository().for_plant(entry["id"])
    tracked = {r["type"] for r in reminders}
    return {
        **entry,
        "tracking": {reminder_type: reminder_type in tracked for reminder_type in REMINDER_TYPES},
    }


@plants_bp.route("/api/identify", methods=["POST"])
@limiter.limit(_identify_rate)
def api_identify():
    """
    Identify the plant in an uploaded photo.

    Request: multipart form with a `photo` file.

    Security: CSRF token required via X-CSRFToken header
    (automatically validated by Flask-WTF CSRFProtect)
    """
    is_valid, error, file_bytes = validate_upload_file(request.files.get("photo"))
    if not is_valid:
        return json_error(error, 400)

    versions = create_image_versions(file_bytes)
    if not versions:
        return json_error(GENERIC_MESSAGES["upload"], 400)

    record, error = ai.identify_plant(versions["model"])
    if error or not record:
        return json_error(sanitize_error(error or "empty result", "identification", "Identify failed"), 502)

    record["image_url"] = to_data_url(versions["thumbnail"])
    entry = get_journal().add_entry(record)

    current_app.logger.info(
        f"Plant identified: {entry['common_name']} (is_plant={entry['is_plant']}, provider={ai.AI_LAST_PROVIDER})"
    )
    return jsonify({"success": True, "plant": _with_tracking(entry)}), 201


@plants_bp.route("/api/history", methods=["GET"])
def api_history():
    """Journal of identified plants, newest first."""
    entries = get_journal().list_entries()
    return jsonify({"success": True, "count": len(entries), "plants": entries})


@plants_bp.route("/api/history/<entry_id>", methods=["GET"])
def api_history_entry(entry_id):
    if not is_valid_entry_id(entry_id):
        return json_error("Invalid plant ID", 400)

    entry = get_journal().get_entry(entry_id)
    if entry is None:
        return json_error(GENERIC_MESSAGES["not_found"], 404)
    return jsonify({"success": True, "plant": _with_tracking(entry)})


@plants_bp.route("/api/history/<entry_id>", methods=["DELETE"])
def api_delete_entry(entry_id):
    """
    Remove one journal entry.

    Reminders created from the entry keep running; they carry their own
    copy of the plant name.
    """
    if not is_valid_entry_id(entry_id):
        return json_error("Invalid plant ID", 400)

    if not get_journal().remove_entry(entry_id):
        return json_error(GENERIC_MESSAGES["not_found"], 404)
    return jsonify({"success": True, "message": "Removed from history"})


@plants_bp.route("/api/history", methods=["DELETE"])
def api_clear_history():
    get_journal().clear()
    current_app.logger.info("Plant journal cleared")
    return jsonify({"success": True, "message": "History cleared"})
