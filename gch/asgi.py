"""
ASGI entrypoint: Django for HTTP, Channels for the ``ws/updates/`` feed.

Settings must be configured and apps loaded before the consumer module
is imported, since it touches the user model.
"""
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "gch.settings")

from django.core.asgi import get_asgi_application  # noqa: E402

http_app = get_asgi_application()

from channels.auth import AuthMiddlewareStack  # noqa: E402
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402

from care.realtime.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter({
    "http": http_app,
    "websocket": AuthMiddlewareStack(URLRouter(websocket_urlpatterns)),
})
