"""
wsgi.py — WSGI entry point.

    gunicorn "splittrip.wsgi:app"
    flask --app splittrip.wsgi run

The config is chosen by FLASK_ENV (development, testing, production).
"""

import os

from splittrip.app import create_app

app = create_app(os.getenv("FLASK_ENV", "development"))
