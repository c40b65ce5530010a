import logging

from .. import config
from .base import NOT_CONFIGURED, WidgetController, WidgetInstance


logger = logging.getLogger(__name__)

# Visual state 0 shows the play icon (paused), 1 the pause icon (playing)
STATE_PAUSED = 0
STATE_PLAYING = 1


class PlayPauseController(WidgetController):
    action = config.ACTION_PREFIX + "play-pause"

    RENDER_INTERVAL = config.STATE_RENDER_INTERVAL

    async def appear(self, inst: WidgetInstance) -> None:
        inst.every(self.RENDER_INTERVAL, lambda: self.render(inst), immediate=True)

    async def render(self, inst: WidgetInstance) -> None:
        if not await self.is_configured():
            await self._transport.set_title(inst.id, NOT_CONFIGURED)
            return
        snapshot = await self._cache.get_snapshot()
        if snapshot is None:
            # Keep the last good face
            return
        await self._transport.set_visual_state(inst.id, STATE_PLAYING if snapshot.is_playing else STATE_PAUSED)

    async def key_press(self, inst: WidgetInstance) -> None:
        if not await self.is_configured():
            await self._transport.show_failure(inst.id)
            return
        try:
            current = await self._api.get_player_state()
            if current.is_playing:
                await self._api.pause()
            else:
                await self._api.play()
        except Exception as e:
            logger.error("Error toggling play/pause: %s", e)
            await self._transport.show_failure(inst.id)
            return
        await self._transport.show_success(inst.id)
        self.schedule_settle_refresh(inst, self.render)
