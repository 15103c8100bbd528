# backend/wsgi.py
"""
WSGI entrypoint for the credit ledger backend.

Production hosts MUST export DJANGO_SETTINGS_MODULE=backend.settings.prod;
otherwise the dev settings are used.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings.dev")

application = get_wsgi_application()
