"""
Production WSGI entry point for Gunicorn.

Gunicorn imports this file and looks for a top-level variable named `app`.

Usage:
    gunicorn -w 1 -k gthread --threads 4 -b 0.0.0.0:$PORT wsgi:app

A single worker keeps one interaction controller (and its pending
completions) per deployment.
"""

from leafy import create_app

app = create_app()
