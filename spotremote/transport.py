import asyncio
import json
import logging


logger = logging.getLogger(__name__)


class DeviceTransport:
    """Display side of the device connection.

    State index 0 shows the play icon, 1 the pause icon.
    """

    async def set_title(self, instance_id: str, text: str) -> None:
        raise NotImplementedError

    async def set_image(self, instance_id: str, image_data_uri: str) -> None:
        raise NotImplementedError

    async def set_visual_state(self, instance_id: str, state_index: int) -> None:
        raise NotImplementedError

    async def show_success(self, instance_id: str) -> None:
        raise NotImplementedError

    async def show_failure(self, instance_id: str) -> None:
        raise NotImplementedError

    async def send_to_property_inspector(self, instance_id: str, action: str, payload: dict) -> None:
        raise NotImplementedError


class JsonLinesTransport(DeviceTransport):
    """Device messages as one JSON object per line over asyncio streams.

    Outgoing messages use the Stream Deck event names (``setTitle``,
    ``setImage``, ``setState``, ``showOk``, ``showAlert``,
    ``sendToPropertyInspector``).
    """

    def __init__(self, reader: asyncio.StreamReader, writer):
        self._reader = reader
        self._writer = writer

    async def _send(self, event: str, context: str, payload: dict | None = None, action: str | None = None):
        message = {"event": event, "context": context}
        if action is not None:
            message["action"] = action
        if payload is not None:
            message["payload"] = payload
        self._writer.write((json.dumps(message) + "\n").encode())
        await self._writer.drain()

    async def set_title(self, instance_id: str, text: str) -> None:
        await self._send("setTitle", instance_id, {"title": text})

    async def set_image(self, instance_id: str, image_data_uri: str) -> None:
        await self._send("setImage", instance_id, {"image": image_data_uri})

    async def set_visual_state(self, instance_id: str, state_index: int) -> None:
        await self._send("setState", instance_id, {"state": state_index})

    async def show_success(self, instance_id: str) -> None:
        await self._send("showOk", instance_id)

    async def show_failure(self, instance_id: str) -> None:
        await self._send("showAlert", instance_id)

    async def send_to_property_inspector(self, instance_id: str, action: str, payload: dict) -> None:
        await self._send("sendToPropertyInspector", instance_id, payload, action=action)

    async def messages(self):
        """Yield incoming device messages until the stream closes."""
        while True:
            try:
                line = await self._reader.readline()
            except ValueError as e:
                # Over the reader limit; any remainder of the line fails to parse below
                logger.warning("Device message too long, skipped: %s", e)
                continue
            if not line:
                return
            line = line.strip()
            if not line:
                continue
            try:
                message = json.loads(line.decode("utf-8", errors="replace"))
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning("Device message JSON parse failed: %s", e)
                continue
            if isinstance(message, dict):
                yield message
