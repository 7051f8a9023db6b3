"""
Application configuration manager.
Defaults, overlaid by an optional JSON file, overlaid by environment variables.
"""

import json
import logging
import os
from pathlib import Path

from videoconverter.core.constants import (
    ENV_CONFIG_FILE, DbBackend, DEFAULT_SQLITE_PATH,
    POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB, POSTGRES_HOST,
    POSTGRES_PORT, POSTGRES_SSLMODE,
    FFMPEG_BIN, CHUNK_PATTERN, DASH_OUTPUT_DIR, DASH_MANIFEST_NAME,
    MERGED_FILE_NAME,
)
from videoconverter.core.security_utils import is_plain_filename

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'db_backend': DbBackend.POSTGRES,
    'sqlite_path': str(DEFAULT_SQLITE_PATH),
    'postgres_user': POSTGRES_USER,
    'postgres_password': POSTGRES_PASSWORD,
    'postgres_db': POSTGRES_DB,
    'postgres_host': POSTGRES_HOST,
    'postgres_port': POSTGRES_PORT,
    'postgres_sslmode': POSTGRES_SSLMODE,
    'ffmpeg_bin': FFMPEG_BIN,
    'chunk_pattern': CHUNK_PATTERN,
    'output_dir_name': DASH_OUTPUT_DIR,
    'manifest_name': DASH_MANIFEST_NAME,
    'merged_file_name': MERGED_FILE_NAME,
}

# config key -> environment variable
_ENV_VARS = {
    'db_backend': 'VIDEOCONVERTER_DB',
    'sqlite_path': 'VIDEOCONVERTER_SQLITE_PATH',
    'postgres_user': 'POSTGRES_USER',
    'postgres_password': 'POSTGRES_PASSWORD',
    'postgres_db': 'POSTGRES_DB',
    'postgres_host': 'POSTGRES_HOST',
    'postgres_port': 'POSTGRES_PORT',
    'postgres_sslmode': 'POSTGRES_SSLMODE',
    'ffmpeg_bin': 'FFMPEG_BIN',
    'chunk_pattern': 'CHUNK_PATTERN',
    'output_dir_name': 'DASH_OUTPUT_DIR',
    'manifest_name': 'DASH_MANIFEST_NAME',
    'merged_file_name': 'MERGED_FILE_NAME',
}

_FILENAME_KEYS = ('output_dir_name', 'manifest_name', 'merged_file_name')

_SSL_MODES = ('disable', 'allow', 'prefer', 'require', 'verify-ca', 'verify-full')


class AppConfig:
    """Worker configuration, read once at startup."""

    def __init__(self, config_path: Path | None = None, environ: dict | None = None):
        self.environ = os.environ if environ is None else environ
        if config_path is None and self.environ.get(ENV_CONFIG_FILE):
            config_path = Path(self.environ[ENV_CONFIG_FILE])
        self.path = config_path
        self._data: dict = {}
        self.load()

    def load(self):
        """Load defaults, then the JSON file if any, then the environment."""
        self._data = dict(_DEFAULTS)

        if self.path is not None and self.path.exists():
            try:
                with open(self.path, 'r') as f:
                    saved = json.load(f)
                for key, value in saved.items():
                    if key in _DEFAULTS:
                        self._data[key] = self._validate(key, value)
                    else:
                        logger.warning("Ignoring unknown config key %r", key)
            except (OSError, ValueError) as e:
                logger.warning("Failed to load config: %s", e)

        for key, env_name in _ENV_VARS.items():
            if env_name in self.environ:
                self._data[key] = self._validate(key, self.environ[env_name])

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value):
        self._data[key] = self._validate(key, value)

    def _validate(self, key: str, value):
        """Validate and coerce config values, falling back to defaults."""
        if key == 'db_backend':
            value = str(value).strip().lower()
            if value not in (DbBackend.POSTGRES, DbBackend.SQLITE):
                logger.warning("Invalid db_backend %r — using %s", value, _DEFAULTS[key])
                return _DEFAULTS[key]
            return value

        if key == 'postgres_port':
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid postgres_port %r — using default", value)
                return _DEFAULTS[key]
            if not 0 < value < 65536:
                logger.warning("postgres_port %r out of range — using default", value)
                return _DEFAULTS[key]
            return value

        if key == 'postgres_sslmode':
            if value not in _SSL_MODES:
                logger.warning("Invalid postgres_sslmode %r — using default", value)
                return _DEFAULTS[key]
            return value

        if key in _FILENAME_KEYS:
            if not is_plain_filename(str(value)):
                logger.warning("Invalid %s %r — using default", key, value)
                return _DEFAULTS[key]
            return str(value)

        if key == 'chunk_pattern':
            value = str(value)
            if not value or '/' in value or '\\' in value:
                logger.warning("Invalid chunk_pattern %r — using default", value)
                return _DEFAULTS[key]
            return value

        return value

    def as_dict(self) -> dict:
        return dict(self._data)

    def postgres_params(self) -> dict:
        """Connection keyword arguments for psycopg2.connect()."""
        return {
            'user': self._data['postgres_user'],
            'password': self._data['postgres_password'],
            'dbname': self._data['postgres_db'],
            'host': self._data['postgres_host'],
            'port': self._data['postgres_port'],
            'sslmode': self._data['postgres_sslmode'],
        }

    @property
    def db_backend(self) -> str:
        return self._data['db_backend']

    @property
    def sqlite_path(self) -> Path:
        return Path(self._data['sqlite_path']).expanduser()

    @property
    def ffmpeg_bin(self) -> str:
        return self._data['ffmpeg_bin']

    @property
    def chunk_pattern(self) -> str:
        return self._data['chunk_pattern']

    @property
    def output_dir_name(self) -> str:
        return self._data['output_dir_name']

    @property
    def manifest_name(self) -> str:
        return self._data['manifest_name']

    @property
    def merged_file_name(self) -> str:
        return self._data['merged_file_name']
