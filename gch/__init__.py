"""Project package for the GCH Healthcare backend (settings, URLs, ASGI/WSGI)."""
