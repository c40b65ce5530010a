import asyncio
import logging

from .. import config
from ..api import RemoteAPIClient
from ..errors import NotYetAvailable
from ..player_state import PlayerStateCache
from ..tokens import TokenStore
from ..transport import DeviceTransport


logger = logging.getLogger(__name__)

NOT_CONFIGURED = "Not\nConfigured"


class WidgetInstance:
    """Per-instance state; owns every timer started for the instance."""

    def __init__(self, instance_id: str, settings: dict | None = None):
        self.id = instance_id
        self.settings = dict(settings or {})
        self.alive = True
        self._tasks: set[asyncio.Task] = set()

    @property
    def timer_count(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def every(self, interval: float, callback, immediate: bool = False) -> asyncio.Task:
        return self._spawn(self._repeat(interval, callback, immediate))

    def after(self, delay: float, callback) -> asyncio.Task:
        return self._spawn(self._once(delay, callback))

    def cancel(self) -> None:
        self.alive = False
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _repeat(self, interval, callback, immediate):
        try:
            if immediate:
                await self._fire(callback)
            while True:
                await asyncio.sleep(interval)
                await self._fire(callback)
        except asyncio.CancelledError:
            pass

    async def _once(self, delay, callback):
        try:
            await asyncio.sleep(delay)
            await self._fire(callback)
        except asyncio.CancelledError:
            pass

    async def _fire(self, callback):
        if not self.alive:
            return
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Timer callback for %s failed: %s", self.id, e)


class WidgetController:
    """One controller per action type, holding a registry of visible instances."""

    action = ""

    def __init__(self, transport: DeviceTransport, store: TokenStore,
                 cache: PlayerStateCache, api: RemoteAPIClient):
        self._transport = transport
        self._store = store
        self._cache = cache
        self._api = api
        self._instances: dict[str, WidgetInstance] = {}

    @property
    def instances(self) -> dict[str, WidgetInstance]:
        return self._instances

    def create_instance(self, instance_id: str, settings: dict | None) -> WidgetInstance:
        return WidgetInstance(instance_id, settings)

    # ── Device events ──────────────────────────────────────────

    async def on_visible(self, instance_id: str, settings: dict | None = None) -> None:
        if instance_id in self._instances:
            self.on_hidden(instance_id)
        inst = self.create_instance(instance_id, settings)
        self._instances[instance_id] = inst
        await self.appear(inst)

    def on_hidden(self, instance_id: str) -> None:
        inst = self._instances.pop(instance_id, None)
        if inst is not None:
            inst.cancel()

    async def on_key_press(self, instance_id: str, settings: dict | None = None) -> None:
        inst = self._instances.get(instance_id)
        if inst is None:
            inst = self.create_instance(instance_id, settings)
        elif settings is not None:
            inst.settings = dict(settings)
        await self.key_press(inst)

    def hide_all(self) -> None:
        for instance_id in list(self._instances):
            self.on_hidden(instance_id)

    # ── Hooks ──────────────────────────────────────────────────

    async def appear(self, inst: WidgetInstance) -> None:
        pass

    async def key_press(self, inst: WidgetInstance) -> None:
        pass

    # ── Helpers ────────────────────────────────────────────────

    async def is_configured(self) -> bool:
        try:
            creds = await self._store.wait_until_loaded(config.SETTINGS_WAIT_TIMEOUT)
        except NotYetAvailable as e:
            logger.warning("%s: %s", self.action, e)
            return False
        return creds.is_configured

    def schedule_settle_refresh(self, inst: WidgetInstance, render) -> None:
        """Refresh the shared cache and re-render once the remote state settles."""
        async def _refresh_and_render():
            await self._cache.refresh_now()
            await render(inst)

        inst.after(config.SETTLE_DELAY, _refresh_and_render)
