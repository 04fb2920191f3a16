"""
Defines JSON endpoints used by the front end.

Endpoints:
- /user/theme: Read or update the theme preference
- /csrf-token: Token for the X-CSRFToken header on blueprint mutations
- /health: Simple health endpoint to verify the server responds
"""

from flask import Blueprint, request, jsonify
from flask_wtf.csrf import generate_csrf
from ..constants import THEMES
from ..services import preferences
from ..services.store import get_store
from ..extensions import limiter


api_bp = Blueprint("api", __name__)


@api_bp.before_request
def _enforce_ajax_for_mutations():
    """Enforce X-Requested-With header on all state-changing API requests.

    Provides CSRF protection for the entire API blueprint because:
    1. Custom headers cannot be set by cross-origin requests without CORS
    2. HTML forms cannot set custom headers
    3. Only JavaScript (same-origin) can set this header
    """
    if request.method in ("POST", "PUT", "DELETE", "PATCH"):
        if request.headers.get("X-Requested-With") != "XMLHttpRequest":
            return jsonify({
                "success": False,
                "error": "Invalid request. Please refresh the page and try again."
            }), 403


@api_bp.route("/health")
@limiter.exempt
def health():
    return jsonify({"status": "ok"}), 200


@api_bp.route("/csrf-token")
def csrf_token():
    return jsonify({"success": True, "csrf_token": generate_csrf()})


@api_bp.route("/user/theme", methods=["GET"])
def get_theme():
    return jsonify({"success": True, "theme": preferences.get_theme(get_store())})


@api_bp.route("/user/theme", methods=["POST"])
@limiter.limit("30 per minute")
def update_theme():
    """
    Updates the theme preference.

    Request body (JSON):
        {
            "theme": "light" | "dark" | "system"
        }

    Returns:
        {
            "success": true/false,
            "error": "error message" (if applicable)
        }
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({"success": False, "error": "Invalid request body"}), 400

    theme = str(data.get("theme", "")).strip().lower()
    success, error = preferences.set_theme(get_store(), theme)

    if not success:
        return jsonify({
            "success": False,
            "error": error or f"Invalid theme. Must be one of: {', '.join(THEMES)}"
        }), 400

    return jsonify({"success": True, "theme": theme}), 200
