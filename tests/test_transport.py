import asyncio
import json

import pytest

from spotremote.transport import JsonLinesTransport


class BufferWriter:
    def __init__(self):
        self.data = b""

    def write(self, data):
        self.data += data

    async def drain(self):
        pass

    def lines(self):
        return [json.loads(line) for line in self.data.decode().splitlines()]


@pytest.mark.unit
def test_outgoing_messages_use_device_event_names():
    writer = BufferWriter()

    async def run():
        device = JsonLinesTransport(asyncio.StreamReader(), writer)
        await device.set_title("k", "Hello")
        await device.set_image("k", "data:image/png;base64,AA==")
        await device.set_visual_state("k", 1)
        await device.show_success("k")
        await device.show_failure("k")

    asyncio.run(run())

    assert writer.lines() == [
        {"event": "setTitle", "context": "k", "payload": {"title": "Hello"}},
        {"event": "setImage", "context": "k", "payload": {"image": "data:image/png;base64,AA=="}},
        {"event": "setState", "context": "k", "payload": {"state": 1}},
        {"event": "showOk", "context": "k"},
        {"event": "showAlert", "context": "k"},
    ]


@pytest.mark.unit
def test_incoming_messages_skip_garbage_until_eof():
    async def run():
        reader = asyncio.StreamReader()
        reader.feed_data(b'{"event": "keyDown", "context": "a"}\n')
        reader.feed_data(b"not json\n\n[1, 2]\n")
        reader.feed_data(b'{"event": "willAppear", "context": "b"}\n')
        reader.feed_eof()
        device = JsonLinesTransport(reader, BufferWriter())
        return [m async for m in device.messages()]

    messages = asyncio.run(run())

    assert messages == [
        {"event": "keyDown", "context": "a"},
        {"event": "willAppear", "context": "b"},
    ]


@pytest.mark.unit
def test_oversized_message_is_skipped():
    async def run():
        reader = asyncio.StreamReader(limit=64)
        reader.feed_data(json.dumps({"event": "sendToPlugin", "payload": {"blob": "x" * 200}}).encode() + b"\n")
        reader.feed_data(b'{"event": "keyDown", "context": "a"}\n')
        reader.feed_eof()
        device = JsonLinesTransport(reader, BufferWriter())
        return [m async for m in device.messages()]

    assert asyncio.run(run()) == [{"event": "keyDown", "context": "a"}]


@pytest.mark.unit
def test_property_inspector_reply_carries_action():
    writer = BufferWriter()

    async def run():
        device = JsonLinesTransport(asyncio.StreamReader(), writer)
        await device.send_to_property_inspector("k", "com.example.act", {"ok": True})

    asyncio.run(run())

    assert writer.lines() == [
        {"event": "sendToPropertyInspector", "context": "k", "action": "com.example.act", "payload": {"ok": True}},
    ]
