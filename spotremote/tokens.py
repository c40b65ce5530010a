import asyncio
import dataclasses
import json
import logging
import os
import time
import urllib.error
from dataclasses import dataclass

from . import config, spotify_http
from .errors import AuthError, NotYetAvailable


logger = logging.getLogger(__name__)

# Credentials field -> settings.json key
SETTINGS_KEYS = {
    "client_id": "spotify_client_id",
    "client_secret": "spotify_client_secret",
    "access_token": "access_token",
    "refresh_token": "refresh_token",
    "expires_at": "token_expires_at",
}

# Keys pushed by the device's property inspector
DEVICE_KEYS = {
    "clientId": "client_id",
    "clientSecret": "client_secret",
    "accessToken": "access_token",
    "refreshToken": "refresh_token",
}
_PUSHABLE_FILE_KEYS = {key: field for field, key in SETTINGS_KEYS.items() if field != "expires_at"}


@dataclass(frozen=True)
class Credentials:
    client_id: str = ""
    client_secret: str = ""
    access_token: str = ""
    refresh_token: str = ""
    expires_at: float | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.access_token and self.refresh_token)

    @property
    def can_refresh(self) -> bool:
        return bool(self.client_id and self.client_secret and self.refresh_token)


def _load_settings(path: str) -> dict:
    try:
        with open(path, "r") as f:
            saved = json.load(f)
        return saved if isinstance(saved, dict) else {}
    except Exception:
        return {}


def _save_settings(path: str, settings: dict) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w") as f:
        json.dump(settings, f, indent=2)


class TokenStore:
    """Single persisted, versioned credentials record.

    Every mutation bumps ``version`` and is written to disk immediately.
    """

    def __init__(self, path: str = config.SETTINGS_FILE):
        self._path = path
        self._settings: dict = {}
        self._credentials = Credentials()
        self._version = 0
        self._loaded = asyncio.Event()

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def version(self) -> int:
        return self._version

    @property
    def is_loaded(self) -> bool:
        return self._loaded.is_set()

    def load(self) -> Credentials:
        self._settings = _load_settings(self._path)
        expires_at = self._settings.get(SETTINGS_KEYS["expires_at"]) or None
        self._credentials = Credentials(
            client_id=str(self._settings.get(SETTINGS_KEYS["client_id"]) or ""),
            client_secret=str(self._settings.get(SETTINGS_KEYS["client_secret"]) or ""),
            access_token=str(self._settings.get(SETTINGS_KEYS["access_token"]) or ""),
            refresh_token=str(self._settings.get(SETTINGS_KEYS["refresh_token"]) or ""),
            expires_at=float(expires_at) if expires_at else None,
        )
        self._version += 1
        self._loaded.set()
        logger.info("Credentials loaded, configured=%s", self._credentials.is_configured)
        return self._credentials

    def save(self) -> None:
        for field, key in SETTINGS_KEYS.items():
            self._settings[key] = getattr(self._credentials, field)
        _save_settings(self._path, self._settings)

    def update(self, **changes) -> Credentials:
        self._credentials = dataclasses.replace(self._credentials, **changes)
        self._version += 1
        self.save()
        self._loaded.set()
        return self._credentials

    def apply_settings(self, settings: dict | None) -> bool:
        """Merge credentials pushed by the device. Returns True if anything changed."""
        changes = {}
        for key, value in (settings or {}).items():
            field = DEVICE_KEYS.get(key) or _PUSHABLE_FILE_KEYS.get(key)
            if field is None:
                continue
            value = str(value or "").strip()
            if value != getattr(self._credentials, field):
                changes[field] = value
        if "access_token" in changes:
            # A pushed access token comes with no known lifetime
            changes["expires_at"] = None
        if not changes:
            self._loaded.set()
            return False
        self.update(**changes)
        logger.info("Credentials updated from device settings: %s", sorted(changes))
        return True

    def clear_tokens(self) -> Credentials:
        return self.update(access_token="", refresh_token="", expires_at=None)

    async def wait_until_loaded(self, timeout: float = config.SETTINGS_WAIT_TIMEOUT) -> Credentials:
        try:
            await asyncio.wait_for(self._loaded.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            raise NotYetAvailable(f"Credentials not available after {timeout}s")
        return self._credentials


class TokenRefresher:
    """Owns the access-token lifecycle for a ``TokenStore``."""

    def __init__(self, store: TokenStore, clock=time.time,
                 margin: float = config.TOKEN_REFRESH_MARGIN,
                 interval: float = config.TOKEN_FORCED_REFRESH_INTERVAL):
        self._store = store
        self._clock = clock
        self._margin = margin
        self._interval = interval
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self.refresh_count = 0

    def needs_refresh(self, creds: Credentials) -> bool:
        if not creds.access_token or creds.expires_at is None:
            return True
        return self._clock() >= creds.expires_at - self._margin

    async def ensure_valid(self) -> Credentials:
        creds = self._store.credentials
        if not creds.can_refresh:
            raise AuthError("Spotify credentials are not configured")
        if self.needs_refresh(creds):
            creds = await self.refresh()
        return creds

    async def refresh(self, force: bool = False) -> Credentials:
        seen_version = self._store.version
        async with self._lock:
            creds = self._store.credentials
            # Double-check after acquiring lock; another coroutine may have refreshed
            if (not force or self._store.version != seen_version) and not self.needs_refresh(creds):
                return creds
            if not creds.can_refresh:
                raise AuthError("Spotify credentials are not configured")
            try:
                token_data = await spotify_http._exec(
                    spotify_http._spotify_token_request,
                    creds.client_id, creds.client_secret,
                    {"grant_type": "refresh_token", "refresh_token": creds.refresh_token},
                )
            except urllib.error.HTTPError as e:
                message = spotify_http._parse_spotify_error(e)
                logger.error("Token refresh failed: %s", message)
                raise AuthError(f"Token refresh failed: {message}") from e
            except Exception as e:
                logger.error("Token refresh failed: %s", e)
                raise AuthError(f"Token refresh failed: {e}") from e

            access_token = (token_data or {}).get("access_token")
            if not access_token:
                logger.error("Token refresh failed: response has no access_token")
                raise AuthError("Token refresh response has no access_token")
            changes = {
                "access_token": access_token,
                "expires_at": self._clock() + token_data.get("expires_in", config.DEFAULT_TOKEN_LIFETIME),
            }
            if token_data.get("refresh_token"):
                changes["refresh_token"] = token_data["refresh_token"]
            self.refresh_count += 1
            creds = self._store.update(**changes)
            logger.info("Token refreshed successfully")
            return creds

    # ── Scheduled refresh ──────────────────────────────────────

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self._refresh_loop())

    async def stop(self) -> None:
        task = self._task
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def _refresh_loop(self):
        """Force a refresh on a fixed period regardless of the known expiry."""
        try:
            while True:
                await asyncio.sleep(self._interval)
                try:
                    await self.refresh(force=True)
                except AuthError as e:
                    logger.warning("Scheduled token refresh failed: %s", e)
        except asyncio.CancelledError:
            pass
