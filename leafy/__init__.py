"""
Application factory and global configuration.

Creates the Flask app, applies security headers (CSP), configures rate limiting
and CSRF, builds the persistence layer (store, reminders, journal, chat) and the
interaction controller, and registers blueprints and CLI commands. This file
keeps startup/config concerns together and avoids domain logic here.
"""

from __future__ import annotations
import os
from flask import Flask, Response
from flask_wtf.csrf import CSRFProtect
from dotenv import load_dotenv  # <-- ensure .env is loaded for local dev
from .extensions import limiter
from .routes.api import api_bp
from .routes.chat import chat_bp
from .routes.plants import plants_bp
from .routes.reminders import reminders_bp
from .services import supabase_client
from .services.store import init_store
from .services.reminders import init_reminders
from .services.journal import init_journal
from .services.chat import init_chat
from .services.interaction import init_controller


def _validate_production_security(app: Flask, cfg_path: str) -> None:
    """
    Validate critical security settings in production environments.

    Raises RuntimeError if production security requirements are not met.
    This prevents the app from starting with insecure configurations.

    Checks:
    - SECRET_KEY must be set and strong (>= 32 characters)
    - DEBUG must be False (no debug mode in production)

    Args:
        app: Flask application instance
        cfg_path: Config path being used (e.g., "leafy.config.ProdConfig")
    """
    is_production = "ProdConfig" in cfg_path
    is_test = app.config.get("TESTING", False)

    if not is_production or is_test:
        return

    errors = []

    secret_key = app.config.get("SECRET_KEY", "")
    if not secret_key:
        errors.append(
            "SECRET_KEY is not set. Set FLASK_SECRET_KEY environment variable. "
            "Generate with: python -c 'import secrets; print(secrets.token_hex(32))'"
        )
    elif len(secret_key) < 32:
        errors.append(
            f"SECRET_KEY is too weak ({len(secret_key)} chars). "
            "Must be at least 32 characters for production security."
        )

    if app.config.get("DEBUG", False):
        errors.append(
            "DEBUG must be False in production. Debug mode exposes sensitive information "
            "and should never be enabled in production environments."
        )

    if errors:
        error_msg = "\n\n[ERROR] PRODUCTION SECURITY VALIDATION FAILED:\n\n" + "\n\n".join(f"  * {err}" for err in errors)
        error_msg += "\n\n[WARNING] The application will not start until these security issues are resolved.\n"
        raise RuntimeError(error_msg)

    app.logger.info("[OK] Production security validation passed")


def create_app(config_object: str | None = None) -> Flask:
    # override=False so production env vars are not overwritten by a stale .env file
    load_dotenv(override=False)

    app = Flask(__name__, instance_relative_config=True)

    # Allow APP_CONFIG to override (e.g., leafy.config.DevConfig)
    cfg_path = config_object or os.getenv("APP_CONFIG", "leafy.config.ProdConfig")
    try:
        app.config.from_object(cfg_path)
    except (ImportError, AttributeError) as e:
        app.logger.warning(f"Could not load config object {cfg_path}: {e}")

    _validate_production_security(app, cfg_path)

    limiter.init_app(app)

    if not app.config.get("RATELIMIT_ENABLED", True):
        limiter.enabled = False

    if not app.secret_key:
        app.secret_key = app.config.get("SECRET_KEY", "")

    # Blueprint mutations send the token in the X-CSRFToken header.
    # The API blueprint uses the X-Requested-With check instead.
    csrf = CSRFProtect(app)
    csrf.exempt(api_bp)

    # Supabase first: the store may be backed by it
    supabase_client.init_supabase(app)

    store = init_store(app)
    repository = init_reminders(app, store)
    init_journal(app, store)
    init_chat(app, store)
    init_controller(app, repository)

    # Content Security Policy (journal thumbnails are data: URLs)
    csp = (
        "default-src 'self'; "
        "img-src 'self' data:; "
        "object-src 'none'; "
        "base-uri 'self'; "
        "frame-ancestors 'none'; "
        "form-action 'self'"
    )

    @app.after_request
    def apply_security_headers(resp: Response) -> Response:
        resp.headers["Content-Security-Policy"] = csp
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        resp.headers["X-Frame-Options"] = "DENY"

        # Permissions-Policy: the app only needs the camera (plant photos)
        resp.headers["Permissions-Policy"] = (
            "accelerometer=(), geolocation=(), gyroscope=(), "
            "magnetometer=(), microphone=(), payment=(), usb=()"
        )

        return resp

    @app.errorhandler(413)
    def request_too_large(_e):
        max_mb = app.config.get("MAX_CONTENT_LENGTH", 0) / (1024 * 1024)
        return {"success": False, "error": f"Upload is too large (max {max_mb:.0f}MB)."}, 413

    @app.errorhandler(429)
    def rate_limited(_e):
        return {"success": False, "error": "Too many requests. Please slow down and try again."}, 429

    # Blueprints
    app.register_blueprint(api_bp, url_prefix="/api/v1")
    app.register_blueprint(plants_bp)
    app.register_blueprint(reminders_bp)
    app.register_blueprint(chat_bp)

    # Register CLI commands
    from leafy.cli import complete_reminder_command, list_reminders_command
    app.cli.add_command(list_reminders_command)
    app.cli.add_command(complete_reminder_command)

    return app
