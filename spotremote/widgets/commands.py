import logging

from .. import config
from ..errors import SpotRemoteError
from ..models import REPEAT_MODES, extract_playlist_id, next_repeat_mode
from .base import WidgetController, WidgetInstance


logger = logging.getLogger(__name__)


class CommandController(WidgetController):
    """Stateless key: one mutating call per press, then ok/alert feedback."""

    label = "command"

    async def key_press(self, inst: WidgetInstance) -> None:
        if not await self.is_configured():
            logger.warning("%s: missing required settings", self.label)
            await self._transport.show_failure(inst.id)
            return
        try:
            await self.execute(inst)
        except Exception as e:
            logger.error("%s failed: %s", self.label, e)
            await self._transport.show_failure(inst.id)
            return
        await self._transport.show_success(inst.id)

    async def execute(self, inst: WidgetInstance) -> None:
        raise NotImplementedError


class NextTrackController(CommandController):
    action = config.ACTION_PREFIX + "next"
    label = "Next track"

    async def execute(self, inst):
        await self._api.next_track()
        logger.info("Skipped to next track")


class PreviousTrackController(CommandController):
    action = config.ACTION_PREFIX + "previous"
    label = "Previous track"

    async def execute(self, inst):
        await self._api.previous_track()
        logger.info("Went back to previous track")


class ToggleShuffleController(CommandController):
    action = config.ACTION_PREFIX + "toggle-shuffle"
    label = "Toggle shuffle"

    async def execute(self, inst):
        current = await self._api.get_player_state()
        await self._api.set_shuffle(not current.shuffle)
        logger.info("Shuffle %s", "off" if current.shuffle else "on")


class RepeatModeController(CommandController):
    """Cycles off -> context -> track -> off, or sets a fixed ``repeatMode``."""

    action = config.ACTION_PREFIX + "repeat-mode"
    label = "Repeat mode"

    async def execute(self, inst):
        mode = inst.settings.get("repeatMode")
        if mode not in REPEAT_MODES:
            current = await self._api.get_player_state()
            mode = next_repeat_mode(current.repeat)
        await self._api.set_repeat(mode)
        logger.info("Repeat mode set to %s", mode)


class LikeSongController(CommandController):
    action = config.ACTION_PREFIX + "like-song"
    label = "Like song"

    async def execute(self, inst):
        current = await self._api.get_player_state()
        track = current.track
        if track is None:
            raise SpotRemoteError("No track currently playing")
        if track.id is None:
            raise SpotRemoteError(f"Cannot save {track.uri!r} to the library")
        await self._api.save_track(track.id)
        logger.info("Track saved to library: %s", track.name)


class PlayPlaylistController(CommandController):
    action = config.ACTION_PREFIX + "play-playlist"
    label = "Play playlist"

    async def execute(self, inst):
        playlist_input = inst.settings.get("playlistId")
        playlist_id = extract_playlist_id(playlist_input)
        if not playlist_id:
            raise SpotRemoteError("No playlist ID/URL configured")
        logger.info("Playing playlist %s from input %s", playlist_id, playlist_input)
        await self._api.play_playlist(playlist_id)
