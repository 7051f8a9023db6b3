#!/usr/bin/env python3
"""
videoconverter v1.0.0 — Main entry point.
Handles a single task payload: merge chunks, package as mpeg-dash, record
the outcome in the ledger.
"""

import sys
import os
import json
import shutil
import logging
import argparse
import traceback
from pathlib import Path
from datetime import datetime

# ── Determine project root ────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from videoconverter.core.constants import (
    APP_NAME, APP_VERSION, LOG_FORMAT, ENV_LOG_LEVEL, ENV_LOG_FILE, DbBackend,
)
from videoconverter.core.config import AppConfig
from videoconverter.core.error_codes import PersistenceError
from videoconverter.core.ledger import open_ledger
from videoconverter.core.converter import VideoConverter
from videoconverter.core.diagnostics import get_diagnostics

logger = logging.getLogger(APP_NAME)


def setup_logging():
    """Log to LOG_FILE when set, else stderr.  Level from LOG_LEVEL."""
    level_name = os.environ.get(ENV_LOG_LEVEL, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    log_file = os.environ.get(ENV_LOG_FILE)
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers = [logging.FileHandler(log_file, encoding="utf-8")]
    else:
        handlers = [logging.StreamHandler()]

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)


def check_prerequisites(config: AppConfig) -> bool:
    """Check that ffmpeg is available."""
    found = shutil.which(config.ffmpeg_bin)
    if not found:
        logger.error("Missing tool %s. PATH = %s",
                     config.ffmpeg_bin, os.environ.get("PATH", ""))
        return False
    logger.info("ffmpeg found at: %s", found)
    return True


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Merge video chunks and package them as mpeg-dash.",
    )
    parser.add_argument(
        "payload", nargs="?", default="-",
        help='Task JSON, e.g. \'{"video_id": 2, "path": "uploads/2"}\'. '
             'Use "-" (default) to read it from stdin.',
    )
    parser.add_argument("--merged-name", help="File name of the intermediate merged file")
    parser.add_argument("--manifest-name", help="File name of the mpeg-dash manifest")
    parser.add_argument("--sqlite", metavar="PATH",
                        help="Use a SQLite ledger at PATH instead of PostgreSQL")
    parser.add_argument("--diagnostics", action="store_true",
                        help="Print tool and ledger diagnostics as JSON and exit")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> AppConfig:
    config = AppConfig()
    if args.merged_name:
        config.set('merged_file_name', args.merged_name)
    if args.manifest_name:
        config.set('manifest_name', args.manifest_name)
    if args.sqlite:
        config.set('db_backend', DbBackend.SQLITE)
        config.set('sqlite_path', args.sqlite)
    return config


def read_payload(value: str) -> bytes:
    if value == "-":
        return sys.stdin.buffer.read()
    return value.encode("utf-8")


def main(argv=None) -> int:
    setup_logging()
    args = parse_args(argv)

    logger.info("=" * 60)
    logger.info("%s v%s starting at %s", APP_NAME, APP_VERSION, datetime.now().isoformat())
    logger.info("Python: %s", sys.executable)
    logger.info("Project root: %s", PROJECT_ROOT)
    logger.info("=" * 60)

    config = build_config(args)

    if args.diagnostics:
        ledger = None
        try:
            ledger = open_ledger(config)
        except PersistenceError as e:
            logger.error("Ledger unavailable: %s", e)
        print(json.dumps(get_diagnostics(config, ledger), indent=2))
        if ledger is not None:
            ledger.close()
        return 0

    if not check_prerequisites(config):
        return 1

    try:
        ledger = open_ledger(config)
    except PersistenceError as e:
        logger.critical("Could not open ledger: %s", e)
        return 1

    try:
        VideoConverter(ledger, config).handle(read_payload(args.payload))
    except Exception as e:
        logger.critical("Fatal error: %s: %s\n%s",
                        type(e).__name__, e, traceback.format_exc())
        return 1
    finally:
        ledger.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
