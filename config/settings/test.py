"""Test settings for the apartment rentals project.

Uses an isolated SQLite database, fast password hashing, eager Celery
tasks and plain console logging so failures stay readable.
"""

import os

from .base import *  # noqa: F401,F403

DEBUG = False

# Row-locking tests need PostgreSQL: set TEST_DB_ENGINE to run them
if os.environ.get('TEST_DB_ENGINE'):
    DATABASES = {
        'default': {
            'ENGINE': os.environ['TEST_DB_ENGINE'],
            'NAME': os.environ.get('DB_NAME', 'rentals'),
            'USER': os.environ.get('DB_USER', ''),
            'PASSWORD': os.environ.get('DB_PASSWORD', ''),
            'HOST': os.environ.get('DB_HOST', ''),
            'PORT': os.environ.get('DB_PORT', ''),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:',
        }
    }

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {"console": {"class": "logging.StreamHandler", "level": "WARNING"}},
    "root": {"handlers": ["console"], "level": "WARNING"},
}
