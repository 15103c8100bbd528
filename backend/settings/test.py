# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS

- SQLite in-memory database (no DATABASE_URL needed)
- Fast password hashing
- Throttling disabled so API tests never trip rate limits
- Credit ledger config pinned so tests do not depend on the host .env
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, REST_FRAMEWORK

DEBUG = False
TESTING = True

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
}

CREDIT_LEDGER = {
    "DEFAULT_PAYMENT_METHOD": "CASH",
    "PAYMENT_METHODS": ["CASH", "CARD", "MOBILE", "MPESA"],
    "UNKNOWN_OPERATOR_NAME": "Unknown",
}

LOGGING = {
    **LOGGING,
    "loggers": {
        "backend": {"handlers": ["console"], "level": "CRITICAL", "propagate": False},
        "credit": {"handlers": ["console"], "level": "CRITICAL", "propagate": False},
        "sales": {"handlers": ["console"], "level": "CRITICAL", "propagate": False},
    },
}
