"""
WSGI / Flask CLI entry point.

Usage:
    gunicorn wsgi:app
    FLASK_APP=wsgi flask sync-now
"""

from plansync import create_app

app = create_app()
