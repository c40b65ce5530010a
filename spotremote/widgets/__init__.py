from .base import WidgetController, WidgetInstance
from .commands import (LikeSongController, NextTrackController,
                       PlayPlaylistController, PreviousTrackController,
                       RepeatModeController, ToggleShuffleController)
from .now_playing import NowPlayingController
from .play_pause import PlayPauseController
from .volume import (SetVolumeController, VolumeDownController,
                     VolumeUpController)

CONTROLLER_TYPES = (
    NowPlayingController,
    PlayPauseController,
    NextTrackController,
    PreviousTrackController,
    ToggleShuffleController,
    RepeatModeController,
    LikeSongController,
    PlayPlaylistController,
    VolumeUpController,
    VolumeDownController,
    SetVolumeController,
)

__all__ = [
    "CONTROLLER_TYPES",
    "WidgetController",
    "WidgetInstance",
    "NowPlayingController",
    "PlayPauseController",
    "NextTrackController",
    "PreviousTrackController",
    "ToggleShuffleController",
    "RepeatModeController",
    "LikeSongController",
    "PlayPlaylistController",
    "VolumeUpController",
    "VolumeDownController",
    "SetVolumeController",
]
