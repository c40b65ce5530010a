import asyncio

import pytest

from spotremote import config
from spotremote.dispatcher import CommandDispatcher
from spotremote.widgets import NextTrackController, PlayPauseController
from spotremote.widgets.base import WidgetController
from tests.support.fakes import build_stack, player_body

NEXT = config.ACTION_PREFIX + "next"
PLAY_PAUSE = config.ACTION_PREFIX + "play-pause"


@pytest.fixture
def dispatcher(store, transport):
    _, api, cache = build_stack(store)
    d = CommandDispatcher()
    d.register(NextTrackController(transport, store, cache, api))
    pp = PlayPauseController(transport, store, cache, api)
    pp.RENDER_INTERVAL = 0.01
    d.register(pp)
    return d


@pytest.mark.unit
def test_register_requires_action(store, transport):
    _, api, cache = build_stack(store)

    with pytest.raises(ValueError):
        CommandDispatcher().register(WidgetController(transport, store, cache, api))


@pytest.mark.unit
def test_key_down_routes_to_action(dispatcher, transport, fake_spotify):
    asyncio.run(dispatcher.dispatch({"event": "keyDown", "action": NEXT, "context": "k1", "payload": {"settings": {}}}))

    assert len(fake_spotify.calls("POST", "me/player/next")) == 1
    assert transport.calls == [("ok", "k1")]


@pytest.mark.unit
def test_appear_and_disappear_manage_instances(dispatcher, transport, fake_spotify):
    fake_spotify.queue("GET", "me/player", (200, player_body(is_playing=True)))
    controller = dispatcher.controllers[PLAY_PAUSE]

    async def run():
        await dispatcher.dispatch({"event": "willAppear", "action": PLAY_PAUSE, "context": "k2", "payload": {}})
        await asyncio.sleep(0.05)
        inst = controller.instances["k2"]
        visible = dispatcher.visible_count
        await dispatcher.dispatch({"event": "willDisappear", "action": PLAY_PAUSE, "context": "k2"})
        return inst, visible

    inst, visible = asyncio.run(run())

    assert visible == 1
    assert dispatcher.visible_count == 0
    assert controller.instances == {}
    assert inst.timer_count == 0
    assert inst.alive is False
    assert transport.of("state", "k2")[0] == 1


@pytest.mark.unit
def test_unknown_action_and_event_are_ignored(dispatcher, transport, fake_spotify):
    async def run():
        await dispatcher.dispatch({"event": "keyDown", "action": "com.example.other", "context": "x"})
        await dispatcher.dispatch({"event": "titleParametersDidChange", "context": "x"})
        await dispatcher.dispatch({"event": "willDisappear", "context": "never-seen"})

    asyncio.run(run())

    assert transport.calls == []
    assert fake_spotify.api_calls == []


@pytest.mark.unit
def test_handler_errors_do_not_escape(store, transport):
    async def broken(settings):
        raise RuntimeError("boom")

    d = CommandDispatcher(on_global_settings=broken)

    asyncio.run(d.dispatch({"event": "didReceiveGlobalSettings", "payload": {"settings": {"clientId": "x"}}}))


@pytest.mark.unit
def test_global_settings_are_forwarded(store):
    received = []

    async def on_settings(settings):
        received.append(settings)

    d = CommandDispatcher(on_global_settings=on_settings)
    asyncio.run(d.dispatch({"event": "didReceiveGlobalSettings", "payload": {"settings": {"clientId": "x"}}}))

    assert received == [{"clientId": "x"}]


@pytest.mark.unit
def test_plugin_requests_are_forwarded_with_context():
    received = []

    async def on_request(action, context, payload):
        received.append((action, context, payload))

    d = CommandDispatcher(on_plugin_request=on_request)
    asyncio.run(d.dispatch({"event": "sendToPlugin", "action": NEXT, "context": "pi", "payload": {"request": "getStatus"}}))

    assert received == [(NEXT, "pi", {"request": "getStatus"})]
