import json

from channels.generic.websocket import AsyncWebsocketConsumer

from clinic.realtime.events import calendar_group


class CalendarConsumer(AsyncWebsocketConsumer):
    """Pushes appointment changes to the calendars of one organization."""

    async def connect(self):
        user = self.scope.get("user")
        organization_id = getattr(user, "organization_id", None)
        if not (user and user.is_authenticated and organization_id):
            await self.close(code=4001)
            return
        self.group_name = calendar_group(organization_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def calendar_changed(self, event):
        # event: {"type": "calendar.changed", "action": str, "appointmentIds": [...], "ts": "..."}
        await self.send(json.dumps(event))
