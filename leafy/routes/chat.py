"""
Chat routes for the Leafy botanist.

The transcript lives in the persistent store, so a page reload shows the
same conversation.
"""

from __future__ import annotations
from flask import Blueprint, current_app, request, jsonify
from leafy.services.chat import get_chat
from leafy.utils.errors import json_error
from leafy.extensions import limiter

chat_bp = Blueprint("chat", __name__, url_prefix="/chat")


def _chat_rate():
    return current_app.config.get("RATELIMIT_CHAT", "8 per minute")


@chat_bp.route("/api/messages", methods=["GET"])
def api_messages():
    messages = get_chat().messages()
    return jsonify({"success": True, "count": len(messages), "messages": messages})


@chat_bp.route("/api/messages", methods=["POST"])
@limiter.limit(_chat_rate, methods=["POST"])  # Only rate-limit POST requests
def api_send():
    """
    Send a message and get the botanist's reply.

    Request body:
        {"message": "Why are my monstera leaves turning yellow?"}

    A failed assistant call still answers 200 with an apology reply, so the
    conversation keeps flowing; `degraded` tells the client it happened.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return json_error("Invalid request body", 400)
    reply, error = get_chat().send_message(data.get("message", ""))
    if reply is None:
        return json_error(error or "Message is required.", 400)

    return jsonify({"success": True, "reply": reply, "degraded": bool(error)})


@chat_bp.route("/api/messages", methods=["DELETE"])
def api_clear():
    get_chat().clear_transcript()
    return jsonify({"success": True, "message": "Conversation cleared"})
