"""
ASGI config for the labtech project.

Only HTTP is served; the lab backend has no websocket endpoints.
"""
import os

from django.core.asgi import get_asgi_application  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "labtech.settings")

application = get_asgi_application()
