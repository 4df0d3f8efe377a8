import json
from urllib.parse import parse_qs

from channels.generic.websocket import AsyncWebsocketConsumer

from care.services.realtime import GROUP


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Forwards ``table.changed`` events to signed-in portal clients.

    ``?tables=check_ins,appointments`` limits the feed to those tables;
    without it every change is forwarded.
    """

    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            await self.close(code=4401)
            return
        query = parse_qs(self.scope.get("query_string", b"").decode())
        self.tables = {t for raw in query.get("tables", []) for t in raw.split(",") if t}
        await self.channel_layer.group_add(GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "role": user.role}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(GROUP, self.channel_name)

    async def table_changed(self, event):
        if self.tables and event["table"] not in self.tables:
            return
        await self.send(json.dumps(event))
