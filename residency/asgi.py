"""
ASGI config for the residency project.

Plain HTTP only; there are no WebSocket routes.
"""
import os

from django.core.asgi import get_asgi_application  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "residency.settings")

application = get_asgi_application()
