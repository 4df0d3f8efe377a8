"""
WSGI config for the GCH Healthcare backend.

It exposes the WSGI callable as a module-level variable named
``application``.  WebSocket traffic is served by ``gch.asgi`` instead.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'gch.settings')

application = get_wsgi_application()
