import asyncio
import logging

from . import config
from .api import RemoteAPIClient
from .dispatcher import CommandDispatcher
from .errors import AuthError
from .player_state import POLLING, PlayerStateCache
from .tokens import TokenRefresher, TokenStore
from .transport import DeviceTransport
from .widgets import CONTROLLER_TYPES


logger = logging.getLogger(__name__)

# Handled in arrival order on the reader; every other event may wait on the network
INLINE_EVENTS = ("willAppear", "willDisappear")


class Plugin:
    """Wires the credential store, refresher, API client, cache and widgets."""

    def __init__(self, settings_file: str | None = None):
        self._settings_file = settings_file or config.SETTINGS_FILE
        self._transport: DeviceTransport | None = None
        self._store: TokenStore | None = None
        self._refresher: TokenRefresher | None = None
        self._api: RemoteAPIClient | None = None
        self._cache: PlayerStateCache | None = None
        self._dispatcher: CommandDispatcher | None = None
        self._event_tasks: set[asyncio.Task] = set()

    @property
    def store(self) -> TokenStore:
        return self._store

    @property
    def cache(self) -> PlayerStateCache:
        return self._cache

    @property
    def dispatcher(self) -> CommandDispatcher:
        return self._dispatcher

    # ── Lifecycle ──────────────────────────────────────────────

    async def _main(self, transport: DeviceTransport):
        self._transport = transport
        self._store = TokenStore(self._settings_file)
        creds = self._store.load()
        self._refresher = TokenRefresher(self._store)
        self._api = RemoteAPIClient(self._refresher)
        self._cache = PlayerStateCache(self._api, self._store)
        self._dispatcher = CommandDispatcher(
            on_global_settings=self.on_global_settings,
            on_plugin_request=self.on_plugin_request,
        )
        for controller_type in CONTROLLER_TYPES:
            self._dispatcher.register(controller_type(transport, self._store, self._cache, self._api))
        logger.info(
            "spotremote loaded, configured=%s, actions=%d",
            creds.is_configured, len(self._dispatcher.controllers),
        )
        if creds.is_configured:
            await self._start_services()

    async def _unload(self):
        logger.info("spotremote unloading")
        for task in list(self._event_tasks):
            task.cancel()
        if self._event_tasks:
            await asyncio.gather(*self._event_tasks, return_exceptions=True)
        if self._dispatcher:
            self._dispatcher.hide_all()
        if self._cache:
            await self._cache.stop()
        if self._refresher:
            await self._refresher.stop()

    async def _start_services(self):
        self._refresher.start()
        try:
            await self._cache.initialize()
        except AuthError as e:
            logger.warning("Player state polling not started: %s", e)

    # ── Device events ──────────────────────────────────────────

    async def handle_event(self, message: dict) -> None:
        if message.get("event") in INLINE_EVENTS:
            await self._dispatcher.dispatch(message)
            return
        task = asyncio.get_running_loop().create_task(self._dispatcher.dispatch(message))
        self._event_tasks.add(task)
        task.add_done_callback(self._event_done)

    def _event_done(self, task: asyncio.Task) -> None:
        self._event_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Device event handler failed: %s", exc)

    async def wait_for_events(self) -> None:
        """Wait until every device event handed off so far has been handled."""
        while self._event_tasks:
            await asyncio.gather(*list(self._event_tasks), return_exceptions=True)

    async def on_global_settings(self, settings: dict) -> None:
        changed = self._store.apply_settings(settings)
        if changed and self._store.credentials.is_configured and self._cache.state != POLLING:
            await self._start_services()

    async def on_plugin_request(self, action: str, context: str, payload: dict) -> None:
        """Answer a property inspector request with a ``sendToPropertyInspector`` reply."""
        request = payload.get("request")
        if request == "getStatus":
            result = await self.get_status()
        elif request == "getAuthStatus":
            result = await self.get_auth_status()
        elif request == "getPlaylists":
            result = await self.get_playlists()
        elif request == "logout":
            result = await self.logout()
        else:
            logger.warning("Unknown property inspector request %r", request)
            return
        await self._transport.send_to_property_inspector(context, action, {"request": request, **result})

    # ── Property inspector requests ────────────────────────────

    async def get_status(self) -> dict:
        snapshot = self._cache.snapshot if self._cache else None
        track = snapshot.track if snapshot else None
        return {
            "configured": bool(self._store and self._store.credentials.is_configured),
            "cache_state": self._cache.state if self._cache else None,
            "is_playing": snapshot.is_playing if snapshot else False,
            "track": {
                "name": track.name,
                "artist": ", ".join(track.artists),
                "album": track.album,
                "uri": track.uri,
            } if track else None,
            "volume": snapshot.volume_percent if snapshot else None,
            "shuffle": snapshot.shuffle if snapshot else False,
            "repeat": snapshot.repeat if snapshot else None,
            "visible_widgets": self._dispatcher.visible_count if self._dispatcher else 0,
        }

    async def get_auth_status(self) -> dict:
        creds = self._store.credentials
        return {
            "authenticated": creds.is_configured,
            "has_client_id": bool(creds.client_id),
            "token_expires_at": creds.expires_at,
        }

    async def get_playlists(self) -> dict:
        try:
            playlists = await self._api.get_user_playlists()
        except Exception as e:
            logger.error("get_playlists failed: %s", e)
            return {"ok": False, "error": str(e)}
        return {"ok": True, "playlists": playlists}

    async def logout(self) -> dict:
        await self._cache.stop(discard_snapshot=True)
        await self._refresher.stop()
        self._store.clear_tokens()
        logger.info("Spotify logged out, tokens cleared")
        return {"ok": True}
