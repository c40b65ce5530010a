"""Blocking urllib helpers for the Spotify endpoints, run through ``_exec``."""

import asyncio
import base64
import json
import urllib.error
import urllib.parse
import urllib.request

from . import config


def _spotify_token_request(client_id: str, client_secret: str, params: dict) -> dict:
    data = urllib.parse.urlencode(params).encode("utf-8")
    credentials = base64.b64encode(f"{client_id}:{client_secret}".encode("utf-8")).decode("ascii")
    req = urllib.request.Request(
        config.SPOTIFY_TOKEN_URL, data=data,
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": f"Basic {credentials}",
        },
    )
    with urllib.request.urlopen(req, timeout=config.HTTP_TIMEOUT, context=config.API_SSL_CTX) as resp:
        return json.loads(resp.read())


def _spotify_api_request(endpoint: str, token: str, method: str = "GET", params: dict | None = None, body: dict | None = None) -> tuple[int, dict | None]:
    """Return ``(status, json_body)``; body is None for 204 and empty replies.

    Non-2xx statuses raise ``urllib.error.HTTPError``.
    """
    url = f"{config.SPOTIFY_API_BASE}/{endpoint.lstrip('/')}"
    if params:
        url = f"{url}?{urllib.parse.urlencode(params)}"
    headers = {"Authorization": f"Bearer {token}"}
    data = None
    if body is not None:
        data = json.dumps(body).encode()
        headers["Content-Type"] = "application/json"
    elif method in ("PUT", "POST"):
        # Spotify rejects bodiless PUT/POST without a length header
        data = b""
    req = urllib.request.Request(url, data=data, headers=headers, method=method)
    with urllib.request.urlopen(req, timeout=config.HTTP_TIMEOUT, context=config.API_SSL_CTX) as resp:
        if resp.status == 204:
            return 204, None
        raw = resp.read()
        if not raw or not raw.strip():
            return resp.status, None
        try:
            return resp.status, json.loads(raw)
        except json.JSONDecodeError:
            return resp.status, None


def _download_image(url: str) -> tuple[bytes, str]:
    req = urllib.request.Request(url)
    with urllib.request.urlopen(req, timeout=config.HTTP_TIMEOUT, context=config.API_SSL_CTX) as resp:
        content_type = resp.headers.get("Content-Type") or "image/jpeg"
        return resp.read(), content_type


def _parse_spotify_error(e: urllib.error.HTTPError) -> str:
    """Extract human-readable message from Spotify API error response."""
    try:
        body = json.loads(e.read())
        error = body.get("error", {})
        if isinstance(error, str):
            return body.get("error_description") or error
        return error.get("message", f"Spotify API error: {e.code}")
    except Exception:
        return f"Spotify API error: {e.code}"


async def _exec(fn, *args, timeout=config.HTTP_TIMEOUT):
    """Run blocking I/O in executor with asyncio-level timeout (covers DNS)."""
    try:
        return await asyncio.wait_for(
            asyncio.get_running_loop().run_in_executor(None, fn, *args),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        raise TimeoutError(f"Request timed out after {timeout}s")
