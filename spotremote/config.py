import os
import ssl


SETTINGS_DIR = os.environ.get(
    "SPOTREMOTE_SETTINGS_DIR",
    os.path.join(os.path.expanduser("~"), ".config", "spotremote"),
)
SETTINGS_FILE = os.path.join(SETTINGS_DIR, "settings.json")
LOG_LEVEL = os.environ.get("SPOTREMOTE_LOG_LEVEL", "INFO").upper()

SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_BASE = "https://api.spotify.com/v1"

HTTP_TIMEOUT = 10

# Token lifecycle (seconds)
TOKEN_REFRESH_MARGIN = 60
TOKEN_FORCED_REFRESH_INTERVAL = 50 * 60
DEFAULT_TOKEN_LIFETIME = 3600

# Player state polling (seconds)
POLL_INTERVAL = 2.0
SNAPSHOT_MAX_AGE = 5.0

# Widget timers (seconds)
TRACK_CHECK_INTERVAL = 5.0
SCROLL_INTERVAL = 0.5
STATE_RENDER_INTERVAL = 2.0
SETTLE_DELAY = 0.5
SETTINGS_WAIT_TIMEOUT = 1.0

MARQUEE_WIDTH = 7
MARQUEE_PADDING = 5

DEFAULT_VOLUME_STEP = 10
DEFAULT_TARGET_VOLUME = 50

ACTION_PREFIX = "com.jan-blmacher.spotifyremote."

# SSL context for outgoing HTTPS requests (Spotify API).
# Minimal environments may not find system CA certs automatically.
API_SSL_CTX: ssl.SSLContext | None = None
for _ca in ("/etc/ssl/certs/ca-certificates.crt", "/etc/ssl/cert.pem"):
    if os.path.isfile(_ca):
        API_SSL_CTX = ssl.create_default_context(cafile=_ca)
        break
if API_SSL_CTX is None:
    API_SSL_CTX = ssl.create_default_context()
