import logging

from .. import config
from ..models import clamp_volume, setting_int
from .base import NOT_CONFIGURED, WidgetController, WidgetInstance


logger = logging.getLogger(__name__)


class VolumeStepController(WidgetController):
    """Shows the device volume and nudges it by the instance's ``volumeStep``."""

    direction = 1
    RENDER_INTERVAL = config.STATE_RENDER_INTERVAL

    async def appear(self, inst: WidgetInstance) -> None:
        inst.every(self.RENDER_INTERVAL, lambda: self.render(inst), immediate=True)

    def step(self, inst: WidgetInstance) -> int:
        return abs(setting_int(inst.settings, "volumeStep", config.DEFAULT_VOLUME_STEP))

    async def render(self, inst: WidgetInstance) -> None:
        if not await self.is_configured():
            await self._transport.set_title(inst.id, NOT_CONFIGURED)
            return
        snapshot = await self._cache.get_snapshot()
        if snapshot is None:
            return
        await self._transport.set_title(inst.id, self.face(inst, snapshot.volume_percent))

    def face(self, inst: WidgetInstance, volume: int | None) -> str:
        return f"{volume}%" if volume is not None else "--"

    async def key_press(self, inst: WidgetInstance) -> None:
        if not await self.is_configured():
            await self._transport.show_failure(inst.id)
            return
        try:
            target = await self.apply(inst)
        except Exception as e:
            logger.error("Error adjusting volume: %s", e)
            await self._transport.show_failure(inst.id)
            return
        logger.info("Volume set to %d%%", target)
        await self._transport.show_success(inst.id)
        self.schedule_settle_refresh(inst, self.render)

    async def apply(self, inst: WidgetInstance) -> int:
        current = await self._api.get_player_state()
        return await self._api.adjust_volume(self.direction * self.step(inst), current.volume_percent)


class VolumeUpController(VolumeStepController):
    action = config.ACTION_PREFIX + "volume-up"
    direction = 1


class VolumeDownController(VolumeStepController):
    action = config.ACTION_PREFIX + "volume-down"
    direction = -1


class SetVolumeController(VolumeStepController):
    """Jumps to the instance's ``targetVolume``; shows target and current volume."""

    action = config.ACTION_PREFIX + "set-volume"

    def target(self, inst: WidgetInstance) -> int:
        return clamp_volume(setting_int(inst.settings, "targetVolume", config.DEFAULT_TARGET_VOLUME))

    def face(self, inst: WidgetInstance, volume: int | None) -> str:
        if volume is None:
            return f"→{self.target(inst)}%"
        return f"→{self.target(inst)}%\n({volume}%)"

    async def apply(self, inst: WidgetInstance) -> int:
        return await self._api.set_volume(self.target(inst))
