import base64
import http.client
import logging
import urllib.error
from dataclasses import dataclass

from . import spotify_http
from .errors import RemoteError, TransportError, UnauthorizedError
from .models import PlayerSnapshot, clamp_volume, parse_player_state
from .tokens import TokenRefresher


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Response:
    status: int
    body: dict | None = None

    @property
    def no_content(self) -> bool:
        return self.status == 204


class RemoteAPIClient:
    """Authenticated requests against the Spotify Web API.

    ``request`` raises ``UnauthorizedError`` once a refresh-and-retry did not
    help, ``RemoteError`` for any other non-2xx status and ``TransportError``
    for network-level failures. Transport failures are never retried here.
    Missing credentials surface as ``AuthError`` from the refresher.
    """

    def __init__(self, refresher: TokenRefresher):
        self._refresher = refresher

    async def request(self, endpoint: str, method: str = "GET", params: dict | None = None, body: dict | None = None) -> Response:
        creds = await self._refresher.ensure_valid()
        try:
            return await self._send(endpoint, creds.access_token, method, params, body)
        except UnauthorizedError:
            logger.info("%s %s unauthorized, refreshing token and retrying once", method, endpoint)
        creds = await self._refresher.refresh(force=True)
        try:
            return await self._send(endpoint, creds.access_token, method, params, body)
        except UnauthorizedError:
            logger.error("%s %s still unauthorized after token refresh", method, endpoint)
            raise

    async def _send(self, endpoint, token, method, params, body) -> Response:
        try:
            status, data = await spotify_http._exec(
                spotify_http._spotify_api_request, endpoint, token, method, params, body,
            )
        except urllib.error.HTTPError as e:
            if e.code == 401:
                raise UnauthorizedError(f"{method} {endpoint} unauthorized") from e
            message = spotify_http._parse_spotify_error(e)
            if e.code == 404:
                logger.warning("%s %s: no active device (%s)", method, endpoint, message)
            raise RemoteError(e.code, message) from e
        except (urllib.error.URLError, http.client.HTTPException, TimeoutError, OSError) as e:
            raise TransportError(f"{method} {endpoint} failed: {e}") from e
        return Response(status, data)

    # ── Player state ───────────────────────────────────────────

    async def get_player_state(self) -> PlayerSnapshot:
        resp = await self.request("me/player")
        if resp.no_content:
            return PlayerSnapshot()
        return parse_player_state(resp.body or {})

    # ── Playback commands ──────────────────────────────────────

    async def play(self) -> None:
        await self.request("me/player/play", "PUT")

    async def pause(self) -> None:
        await self.request("me/player/pause", "PUT")

    async def next_track(self) -> None:
        await self.request("me/player/next", "POST")

    async def previous_track(self) -> None:
        await self.request("me/player/previous", "POST")

    async def play_playlist(self, playlist_id: str) -> None:
        await self.request("me/player/play", "PUT", body={"context_uri": f"spotify:playlist:{playlist_id}"})

    async def set_shuffle(self, state: bool) -> None:
        await self.request("me/player/shuffle", "PUT", params={"state": "true" if state else "false"})

    async def set_repeat(self, mode: str) -> None:
        await self.request("me/player/repeat", "PUT", params={"state": mode})

    async def set_volume(self, volume_percent) -> int:
        volume_percent = clamp_volume(volume_percent)
        await self.request("me/player/volume", "PUT", params={"volume_percent": volume_percent})
        return volume_percent

    async def adjust_volume(self, delta: int, current: int | None) -> int:
        return await self.set_volume((current or 0) + delta)

    # ── Library ────────────────────────────────────────────────

    async def save_track(self, track_id: str) -> None:
        await self.request("me/tracks", "PUT", body={"ids": [track_id]})

    async def get_user_playlists(self) -> list[dict]:
        resp = await self.request("me/playlists", params={"limit": 50})
        items = (resp.body or {}).get("items", [])
        return [
            {"id": p["id"], "name": p.get("name", ""), "uri": p.get("uri", "")}
            for p in items if p
        ]

    # ── Artwork ────────────────────────────────────────────────

    async def fetch_artwork(self, url: str) -> str:
        """Download an image and return it as a data URI."""
        try:
            raw, content_type = await spotify_http._exec(spotify_http._download_image, url)
        except urllib.error.HTTPError as e:
            raise RemoteError(e.code, f"Failed to fetch image: {e.code}") from e
        except (urllib.error.URLError, http.client.HTTPException, TimeoutError, OSError) as e:
            raise TransportError(f"Failed to fetch image: {e}") from e
        content_type = content_type.split(";")[0].strip() or "image/jpeg"
        return f"data:{content_type};base64,{base64.b64encode(raw).decode('ascii')}"
