"""
Error handling utilities for sanitizing user-facing messages and logging.

Provides consistent error handling across the application:
- Sanitizes error messages to prevent information leakage
- Logs detailed error information for debugging
- Provides user-friendly error messages
"""

from __future__ import annotations
from typing import Tuple
from flask import current_app, jsonify

# User-friendly generic error messages
GENERIC_MESSAGES = {
    "storage": "We couldn't save your changes. Please try again.",
    "validation": "The information provided is invalid. Please check and try again.",
    "upload": "Failed to upload file. Please try again.",
    "not_found": "The requested item was not found.",
    "identification": "Botany failure! I couldn't identify this plant. Make sure the photo is clear.",
    "network": "Network error occurred. Please check your connection and try again.",
}


def sanitize_error(
    error: Exception | str,
    error_type: str = "network",
    log_prefix: str = ""
) -> str:
    """
    Sanitize error message for user display and log full details.

    Security: Prevents exposing provider error messages or API key hints to
    end users. Full details are logged for debugging.

    Args:
        error: The exception (or service error string) that occurred
        error_type: Type of error (storage, validation, upload, not_found, identification, network)
        log_prefix: Optional prefix for log message context

    Returns:
        User-friendly error message

    Examples:
        >>> record, error = ai.identify_plant(image_b64)
        >>> if error:
        ...     return json_error(sanitize_error(error, "identification", "Identify failed"), 502)
    """
    error_message = str(error)
    log_message = f"{log_prefix}: {error_message}" if log_prefix else error_message

    if error_type in ["validation", "not_found"]:
        # These are expected errors (user mistakes), log as info
        current_app.logger.info(f"Expected error - {log_message}")
    elif isinstance(error, Exception):
        current_app.logger.error(f"Unexpected error - {log_message}", exc_info=error)
    else:
        current_app.logger.error(f"Service error - {log_message}")

    return GENERIC_MESSAGES.get(error_type, GENERIC_MESSAGES["network"])


def json_error(message: str, status: int = 400) -> Tuple:
    """Standard JSON error body used by every API route."""
    return jsonify({"success": False, "error": message}), status


def log_info(message: str, **context) -> None:
    """
    Log an info message with optional context.

    Examples:
        >>> log_info("Reminder created", plant_id="k2x9", type="water")
    """
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        message = f"{message} | Context: {context_str}"

    current_app.logger.info(message)
