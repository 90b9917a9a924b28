"""
wsgi.py — Entry point for gunicorn and the Flask CLI.

    gunicorn "stockserver.wsgi:app"
    flask --app stockserver.wsgi run
"""

import os

from stockserver.app import create_app

app = create_app(os.getenv("FLASK_ENV", "development"))
