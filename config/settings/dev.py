"""Development settings for apartment rentals project.

This module extends the base settings with development specific
configuration, such as enabling debug, allowing all hosts and running
Celery tasks eagerly. Do not use these settings in production!
"""

from .base import *  # noqa: F401,F403

# Enable debug mode for development
DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ['*']

# Run periodic tasks inline when no broker is available
CELERY_TASK_ALWAYS_EAGER = os.environ.get('CELERY_TASK_ALWAYS_EAGER', 'false').lower() == 'true'
