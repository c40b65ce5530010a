import asyncio
import logging

from .. import config
from ..models import Marquee
from .base import WidgetController, WidgetInstance


logger = logging.getLogger(__name__)


class NowPlayingState:
    """Render state of one now-playing key, shared by its two timers."""

    def __init__(self):
        self.track_uri: str | None = None
        self.artwork_url: str | None = None
        self.marquee: Marquee | None = None
        self.ready = False
        self.lock = asyncio.Lock()

    def clear(self) -> None:
        self.track_uri = None
        self.artwork_url = None
        self.marquee = None
        self.ready = False


class NowPlayingInstance(WidgetInstance):
    def __init__(self, instance_id: str, settings: dict | None = None):
        super().__init__(instance_id, settings)
        self.render = NowPlayingState()


class NowPlayingController(WidgetController):
    """Album art plus a scrolling "artist - title" marquee.

    The slow timer detects track changes by URI and swaps the artwork; the
    fast timer only advances the marquee. Both hold ``render.lock`` while
    touching the render state, so a scroll frame never lands between the
    title reset and the new artwork.
    """

    action = config.ACTION_PREFIX + "now-playing"

    TRACK_INTERVAL = config.TRACK_CHECK_INTERVAL
    SCROLL_INTERVAL = config.SCROLL_INTERVAL

    def create_instance(self, instance_id, settings):
        return NowPlayingInstance(instance_id, settings)

    async def appear(self, inst: NowPlayingInstance) -> None:
        inst.every(self.TRACK_INTERVAL, lambda: self.refresh_track(inst), immediate=True)
        inst.every(self.SCROLL_INTERVAL, lambda: self.advance_scroll(inst))

    async def refresh_track(self, inst: NowPlayingInstance) -> None:
        if not await self.is_configured():
            await self._show_static(inst, "Not Configured")
            return

        snapshot = await self._cache.get_snapshot()
        if snapshot is None:
            await self._show_static(inst, "Error")
            return
        track = snapshot.track
        if track is None:
            await self._show_static(inst, "No Track\nPlaying")
            return

        state = inst.render
        async with state.lock:
            new_track = track.uri != state.track_uri
            if new_track:
                logger.info("New track detected: %s", track.name)
                state.track_uri = track.uri
                state.artwork_url = track.artwork_url
                state.marquee = Marquee(track.display_text)
                state.ready = False
                # Clear the old title before the new artwork goes up
                await self._transport.set_title(inst.id, "")
            elif track.artwork_url == state.artwork_url:
                return
            else:
                logger.info("Album art changed, updating")
                state.artwork_url = track.artwork_url

        image = await self._load_artwork(track.artwork_url)

        async with state.lock:
            if not inst.alive or state.track_uri != track.uri:
                return
            await self._transport.set_image(inst.id, image)
            if new_track:
                state.ready = True
                await self._transport.set_title(inst.id, state.marquee.frame())

    async def advance_scroll(self, inst: NowPlayingInstance) -> None:
        state = inst.render
        async with state.lock:
            if not state.ready or state.marquee is None:
                return
            await self._transport.set_title(inst.id, state.marquee.frame())

    async def _show_static(self, inst: NowPlayingInstance, text: str) -> None:
        async with inst.render.lock:
            inst.render.clear()
            await self._transport.set_title(inst.id, text)
            await self._transport.set_image(inst.id, "")

    async def _load_artwork(self, url: str | None) -> str:
        if not url:
            logger.warning("No album art available")
            return ""
        try:
            return await self._api.fetch_artwork(url)
        except Exception as e:
            logger.error("Failed to fetch album art: %s", e)
            return ""
