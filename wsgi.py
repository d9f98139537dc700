"""
WSGI / Flask CLI entry point.

Usage:
    gunicorn wsgi:app
    FLASK_APP=wsgi flask db upgrade
    FLASK_APP=wsgi flask seed
    FLASK_APP=wsgi flask retry-failed-emails
"""

from traveldesk import create_app

app = create_app()
