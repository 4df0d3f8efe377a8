"""
Table change notifications.

Portals keep their lists fresh by listening on ``ws/updates/`` and
re-fetching whenever a table they show has changed.  Events are sent
after the surrounding transaction commits, so a client never re-fetches
before the row is visible.  Delivery is best effort.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

logger = logging.getLogger(__name__)

GROUP = "updates"


def _send(event: dict) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(GROUP, event)
    except Exception:
        logger.warning("could not broadcast %s change", event.get("table"), exc_info=True)


def notify_change(table: str, event: str, pk) -> None:
    """Queue a ``table.changed`` event for ``table`` once the transaction commits."""
    payload = {"type": "table.changed", "table": table, "event": event, "id": str(pk)}
    transaction.on_commit(lambda: _send(payload))
