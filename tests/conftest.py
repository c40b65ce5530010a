import json
import os
import sys
import time

import pytest

# Ensure project root is on sys.path so 'spotremote' and 'main' import correctly
_TESTS_DIR = os.path.dirname(__file__)
_ROOT_DIR = os.path.abspath(os.path.join(_TESTS_DIR, os.pardir))
if _ROOT_DIR not in sys.path:
    sys.path.insert(0, _ROOT_DIR)

from spotremote import spotify_http
from spotremote.tokens import TokenStore
from tests.support.fakes import CONFIGURED, FakeSpotify, FakeTransport


@pytest.fixture
def fake_spotify(monkeypatch):
    """Replace every outgoing HTTP helper; no test touches the network."""
    fake = FakeSpotify()
    monkeypatch.setattr(spotify_http, "_spotify_api_request", fake.api_request)
    monkeypatch.setattr(spotify_http, "_spotify_token_request", fake.token_request)
    monkeypatch.setattr(spotify_http, "_download_image", fake.download_image)
    return fake


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({**CONFIGURED, "token_expires_at": time.time() + 3600}))
    return path


@pytest.fixture
def store(settings_file):
    s = TokenStore(str(settings_file))
    s.load()
    return s


@pytest.fixture
def unconfigured_store(tmp_path):
    s = TokenStore(str(tmp_path / "empty.json"))
    s.load()
    return s


@pytest.fixture
def transport():
    return FakeTransport()
