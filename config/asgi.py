"""ASGI entry point for the apartment rentals API.

Only plain HTTP is served; the booking API has no streaming endpoints.
"""

import os
from django.core.asgi import get_asgi_application  # type: ignore

# Production servers set DJANGO_SETTINGS_MODULE explicitly.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_asgi_application()
