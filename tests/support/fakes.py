"""Shared fakes for the Spotify HTTP helpers and the device transport."""

import io
import json
import threading
import urllib.error

from spotremote.api import RemoteAPIClient
from spotremote.player_state import PlayerStateCache
from spotremote.tokens import TokenRefresher
from spotremote.transport import DeviceTransport


CONFIGURED = {
    "spotify_client_id": "client-id",
    "spotify_client_secret": "client-secret",
    "access_token": "access-token",
    "refresh_token": "refresh-token",
}


def http_error(code: int, message: str = "") -> urllib.error.HTTPError:
    body = json.dumps({"error": {"status": code, "message": message}}).encode() if message else b""
    return urllib.error.HTTPError("https://api.spotify.com/v1/x", code, "error", {}, io.BytesIO(body))


def player_body(uri="spotify:track:abc123", name="Song", artists=("Artist",), album="Album",
                is_playing=True, volume=50, shuffle=False, repeat="off",
                images=("https://i.scdn.co/image/large",)):
    return {
        "is_playing": is_playing,
        "shuffle_state": shuffle,
        "repeat_state": repeat,
        "device": {"id": "dev1", "volume_percent": volume},
        "item": {
            "name": name,
            "uri": uri,
            "artists": [{"name": a} for a in artists],
            "album": {"name": album, "images": [{"url": u} for u in images]},
        },
    }


class FakeSpotify:
    """Scripted stand-in for the blocking urllib helpers.

    Outcomes queued per ``(method, endpoint)`` are consumed in order; the last
    one repeats. An outcome is a ``(status, body)`` tuple, an int error status
    or an exception instance. Unscripted endpoints answer 204.
    """

    def __init__(self):
        self.api_calls = []
        self.token_calls = []
        self.image_calls = []
        self.responses = {}
        self.token_outcomes = [{"access_token": "new-access", "expires_in": 3600}]
        self.image = (b"\x89PNG", "image/png")
        # When set to a threading.Event, API calls block until it is set
        self.gate = None
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def queue(self, method, endpoint, *outcomes):
        self.responses[(method, endpoint)] = list(outcomes)

    def calls(self, method=None, endpoint=None):
        return [
            c for c in self.api_calls
            if (method is None or c[0] == method) and (endpoint is None or c[1] == endpoint)
        ]

    def _next(self, outcomes, default):
        with self._lock:
            if not outcomes:
                return default
            return outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]

    def api_request(self, endpoint, token, method="GET", params=None, body=None):
        self.api_calls.append((method, endpoint, token, params, body))
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                self.gate.wait(5)
            return self._answer(method, endpoint)
        finally:
            with self._lock:
                self.in_flight -= 1

    def _answer(self, method, endpoint):
        outcome = self._next(self.responses.get((method, endpoint), []), (204, None))
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, int):
            raise http_error(outcome)
        return outcome

    def token_request(self, client_id, client_secret, params):
        self.token_calls.append((client_id, client_secret, dict(params)))
        outcome = self._next(self.token_outcomes, None)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def download_image(self, url):
        self.image_calls.append(url)
        if isinstance(self.image, BaseException):
            raise self.image
        return self.image


class FakeTransport(DeviceTransport):
    def __init__(self):
        self.calls = []

    async def set_title(self, instance_id, text):
        self.calls.append(("title", instance_id, text))

    async def set_image(self, instance_id, image_data_uri):
        self.calls.append(("image", instance_id, image_data_uri))

    async def set_visual_state(self, instance_id, state_index):
        self.calls.append(("state", instance_id, state_index))

    async def show_success(self, instance_id):
        self.calls.append(("ok", instance_id))

    async def show_failure(self, instance_id):
        self.calls.append(("alert", instance_id))

    async def send_to_property_inspector(self, instance_id, action, payload):
        self.calls.append(("pi", instance_id, payload))

    def of(self, kind, instance_id=None):
        """Payloads of every recorded call of ``kind`` (instance id for ok/alert)."""
        return [
            c[2] if len(c) > 2 else c[1] for c in self.calls
            if c[0] == kind and (instance_id is None or c[1] == instance_id)
        ]


def build_stack(store, interval=60.0):
    refresher = TokenRefresher(store)
    api = RemoteAPIClient(refresher)
    cache = PlayerStateCache(api, store, interval=interval)
    return refresher, api, cache
