"""
Shared constants for videoconverter.
Single source of truth — imported by every other module.
"""

import pathlib

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "videoconverter"
APP_VERSION = "1.0.0"

# ── Filesystem paths ─────────────────────────────────────────────────
HOME = pathlib.Path.home()

APP_DATA_DIR = HOME / ".videoconverter"
DEFAULT_SQLITE_PATH = APP_DATA_DIR / "ledger.db"

# ── Environment variable names ───────────────────────────────────────
ENV_CONFIG_FILE = "VIDEOCONVERTER_CONFIG"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_LOG_FILE = "LOG_FILE"

# ── Ledger backends ──────────────────────────────────────────────────
class DbBackend:
    POSTGRES = "postgres"
    SQLITE = "sqlite"

# ── Handler stages (ordered) ─────────────────────────────────────────
class Stage:
    PARSE = "PARSE"
    DEDUP_CHECK = "DEDUP_CHECK"
    MERGE = "MERGE"
    PREPARE_OUTPUT = "PREPARE_OUTPUT"
    TRANSCODE = "TRANSCODE"
    CLEANUP = "CLEANUP"
    COMMIT = "COMMIT"

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    MALFORMED_TASK = "ERR_MALFORMED_TASK"
    CHUNK_DISCOVERY = "ERR_CHUNK_DISCOVERY"
    MERGE_OUTPUT_CREATE = "ERR_MERGE_OUTPUT_CREATE"
    CHUNK_READ = "ERR_CHUNK_READ"
    OUTPUT_DIR_CREATE = "ERR_OUTPUT_DIR_CREATE"
    TRANSCODE = "ERR_TRANSCODE"
    CLEANUP = "ERR_CLEANUP"
    PERSISTENCE = "ERR_PERSISTENCE"

    UNEXPECTED = "ERR_UNEXPECTED"

# ── Chunk / merge defaults ───────────────────────────────────────────
CHUNK_PATTERN = "*.chunk"
CHUNK_NUMBER_PATTERN = r"\d+"
NO_SEQUENCE_NUMBER = -1
MERGED_FILE_NAME = "merged.mp4"

# video ids must fit a signed 64-bit database INTEGER
MIN_VIDEO_ID = -(2 ** 63)
MAX_VIDEO_ID = 2 ** 63 - 1

# ── Transcode (MPEG-DASH) defaults ───────────────────────────────────
FFMPEG_BIN = "ffmpeg"
DASH_FORMAT = "dash"
DASH_OUTPUT_DIR = "mpeg-dash"
DASH_MANIFEST_NAME = "manifest.mpd"

# ── PostgreSQL defaults ──────────────────────────────────────────────
POSTGRES_USER = "myuser"
POSTGRES_PASSWORD = "mypassword"
POSTGRES_DB = "mydb"
POSTGRES_HOST = "postgres_container"
POSTGRES_PORT = 5432
POSTGRES_SSLMODE = "disable"
POSTGRES_CONNECT_TIMEOUT = 10

# ── Misc ──────────────────────────────────────────────────────────────
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
# Characters forbidden in configured file names
UNSAFE_FILENAME_CHARS = r'[<>:"/\\|?*\x00-\x1f]'
MAX_ERROR_DETAILS_LEN = 8000
