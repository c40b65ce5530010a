import re
from dataclasses import dataclass, field

from . import config


REPEAT_OFF = "off"
REPEAT_CONTEXT = "context"
REPEAT_TRACK = "track"
REPEAT_MODES = (REPEAT_OFF, REPEAT_CONTEXT, REPEAT_TRACK)

_PLAYLIST_URL_RE = re.compile(r"open\.spotify\.com/playlist/([a-zA-Z0-9]+)")
_PLAYLIST_URI_RE = re.compile(r"spotify:playlist:([a-zA-Z0-9]+)")


@dataclass(frozen=True)
class Track:
    name: str
    artists: tuple[str, ...]
    album: str
    uri: str
    artwork_url: str | None = None

    @property
    def id(self) -> str | None:
        parts = self.uri.split(":")
        if len(parts) == 3 and parts[1] == "track" and parts[2]:
            return parts[2]
        return None

    @property
    def display_text(self) -> str:
        return f"{', '.join(self.artists)} - {self.name}"


@dataclass(frozen=True)
class PlayerSnapshot:
    is_playing: bool = False
    track: Track | None = None
    volume_percent: int | None = None
    shuffle: bool = False
    repeat: str = REPEAT_OFF


def parse_player_state(data: dict | None) -> PlayerSnapshot:
    """Build a snapshot from a GET /me/player body (None means 204)."""
    if data is None:
        return PlayerSnapshot()

    device = data.get("device") or {}
    volume_percent = device.get("volume_percent")
    shuffle = bool(data.get("shuffle_state", False))
    repeat = data.get("repeat_state") or REPEAT_OFF
    if repeat not in REPEAT_MODES:
        repeat = REPEAT_OFF

    item = data.get("item")
    if item is None:
        return PlayerSnapshot(volume_percent=volume_percent, shuffle=shuffle, repeat=repeat)

    album = item.get("album") or {}
    images = album.get("images") or []
    artwork_url = None
    for image in images[:2]:
        if image and image.get("url"):
            artwork_url = image["url"]
            break

    track = Track(
        name=item.get("name", ""),
        artists=tuple(a.get("name", "") for a in item.get("artists", [])),
        album=album.get("name", ""),
        uri=item.get("uri", ""),
        artwork_url=artwork_url,
    )
    return PlayerSnapshot(
        is_playing=bool(data.get("is_playing", False)),
        track=track,
        volume_percent=volume_percent,
        shuffle=shuffle,
        repeat=repeat,
    )


def next_repeat_mode(current: str) -> str:
    if current == REPEAT_OFF:
        return REPEAT_CONTEXT
    if current == REPEAT_CONTEXT:
        return REPEAT_TRACK
    return REPEAT_OFF


def clamp_volume(volume) -> int:
    return max(0, min(100, int(volume)))


def extract_playlist_id(value: str | None) -> str:
    """Accept an open.spotify.com URL, a spotify:playlist: URI or a bare ID."""
    if not value:
        return ""
    trimmed = value.strip()
    match = _PLAYLIST_URL_RE.search(trimmed) or _PLAYLIST_URI_RE.search(trimmed)
    if match:
        return match.group(1)
    return trimmed


def setting_int(settings: dict | None, key: str, default: int) -> int:
    """Read a numeric per-widget setting; the property inspector may send strings."""
    if not settings:
        return default
    value = settings.get(key)
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


@dataclass
class Marquee:
    """Fixed-width horizontal scroller over ``text``.

    Text that fits in ``width`` is static. Longer text is padded and each
    ``frame()`` returns the window at the current offset, then advances the
    offset modulo the padded length.
    """

    text: str
    width: int = config.MARQUEE_WIDTH
    padding: int = config.MARQUEE_PADDING
    offset: int = field(default=0)

    @property
    def is_static(self) -> bool:
        return len(self.text) <= self.width

    @property
    def padded(self) -> str:
        return self.text + " " * self.padding

    def window(self) -> str:
        if self.is_static:
            return self.text
        padded = self.padded
        return (padded + padded)[self.offset:self.offset + self.width]

    def frame(self) -> str:
        visible = self.window()
        if not self.is_static:
            self.offset = (self.offset + 1) % len(self.padded)
        return visible

    def reset(self) -> None:
        self.offset = 0
