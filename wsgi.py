"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi run
    flask --app wsgi db upgrade
    flask --app wsgi import-legacy backup.json
"""

from resolution_desk import create_app

app = create_app()
