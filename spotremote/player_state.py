import asyncio
import logging
import time

from . import config
from .api import RemoteAPIClient
from .errors import AuthError
from .models import PlayerSnapshot
from .tokens import TokenStore


logger = logging.getLogger(__name__)

UNINITIALIZED = "uninitialized"
POLLING = "polling"
STOPPED = "stopped"


class PlayerStateCache:
    """Shared player state, fetched once per tick for every widget.

    One background task polls GET /me/player every ``interval`` seconds and
    swaps in a new immutable ``PlayerSnapshot`` on success. A failed tick is
    logged and leaves the previous snapshot in place. All fetches (loop
    ticks, ``refresh_now`` and the first ``get_snapshot``) go through
    ``_tick_lock`` so at most one request is in flight.
    """

    def __init__(self, api: RemoteAPIClient, store: TokenStore,
                 interval: float = config.POLL_INTERVAL, clock=time.monotonic):
        self._api = api
        self._store = store
        self._interval = interval
        self._clock = clock
        self._state = UNINITIALIZED
        self._snapshot: PlayerSnapshot | None = None
        self._fetched_at = 0.0
        self._task: asyncio.Task | None = None
        self._tick_lock = asyncio.Lock()
        self._ticks_started = 0

    @property
    def state(self) -> str:
        return self._state

    @property
    def snapshot(self) -> PlayerSnapshot | None:
        return self._snapshot

    @property
    def fetched_at(self) -> float:
        return self._fetched_at

    # ── Lifecycle ──────────────────────────────────────────────

    async def initialize(self) -> None:
        if self._state == POLLING:
            return
        if not self._store.credentials.is_configured:
            raise AuthError("Cannot poll player state without credentials")

        logger.info("Initializing player state polling")
        self._state = POLLING
        await self._run_tick()
        self._task = asyncio.get_running_loop().create_task(self._poll_loop())
        logger.info("Player state polling started, interval=%ss", self._interval)

    async def stop(self, discard_snapshot: bool = False) -> None:
        self._state = STOPPED
        if discard_snapshot:
            self._snapshot = None
            self._fetched_at = 0.0
        task = self._task
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Player state polling stopped")

    async def _poll_loop(self):
        try:
            while True:
                await asyncio.sleep(self._interval)
                await self._run_tick()
        except asyncio.CancelledError:
            pass

    async def _run_tick(self, requested_at: int | None = None, only_if_empty: bool = False) -> PlayerSnapshot | None:
        # A cancelled reader must not release the lock while its request is still running
        return await asyncio.shield(self._tick(requested_at, only_if_empty))

    async def _tick(self, requested_at, only_if_empty):
        async with self._tick_lock:
            if only_if_empty and self._snapshot is not None:
                return self._snapshot
            if requested_at is not None and self._ticks_started > requested_at:
                # A tick that began after the request has already completed
                return self._snapshot
            self._ticks_started += 1
            try:
                snapshot = await self._api.get_player_state()
            except Exception as e:
                logger.warning("Poll playback failed: %s", e)
                return self._snapshot
            if self._state == STOPPED:
                return self._snapshot
            self._snapshot = snapshot
            self._fetched_at = self._clock()
            logger.debug(
                "Player state updated: playing=%s track=%s volume=%s",
                snapshot.is_playing, snapshot.track.uri if snapshot.track else None, snapshot.volume_percent,
            )
            return snapshot

    # ── Readers ────────────────────────────────────────────────

    async def get_snapshot(self, max_age: float = config.SNAPSHOT_MAX_AGE) -> PlayerSnapshot | None:
        if self._snapshot is None and self._state != STOPPED:
            await self._run_tick(only_if_empty=True)
        snapshot = self._snapshot
        if snapshot is not None:
            age = self._clock() - self._fetched_at
            if age > max_age:
                logger.warning("Cached player state is %.1fs old, consider it stale", age)
        return snapshot

    async def refresh_now(self) -> PlayerSnapshot | None:
        """Run a poll tick now instead of waiting for the next interval."""
        if self._state == STOPPED:
            return self._snapshot
        logger.debug("Manual refresh requested")
        return await self._run_tick(requested_at=self._ticks_started)

