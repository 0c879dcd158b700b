"""Runtime configuration from environment variables and an optional .env file."""

import logging
import os
from pathlib import Path
from typing import Optional

from .text_capture import DEFAULT_LIMIT

logger = logging.getLogger(__name__)

CONFIG_KEYS = ['KEEP_LONG_STDIO', 'STDIO_LIMIT', 'JUNIT_REPORT_DIALECTS', 'FASTMCP_PORT']
TRUE_VALUES = {'1', 'true', 'yes', 'on'}


def load_config() -> dict:
    """Load config from environment variables and .env file.

    Environment variables take precedence over .env file values.
    """
    paths = [
        os.environ.get('JUNIT_REPORT_ANALYZER_CONFIG'),
        Path.cwd() / '.env',
    ]
    config = {}
    for p in paths:
        if p and Path(p).exists():
            try:
                for line in Path(p).read_text().splitlines():
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        config[key.strip()] = value.strip()
                break
            except OSError as e:
                logger.warning(f"Failed to read config file {p}: {e}")

    for key in CONFIG_KEYS:
        env_value = os.environ.get(key)
        if env_value is not None:
            config[key] = env_value

    return config


def get_keep_long_stdio(config: dict = None) -> bool:
    config = load_config() if config is None else config
    return str(config.get('KEEP_LONG_STDIO', '')).strip().lower() in TRUE_VALUES


def get_stdio_limit(config: dict = None) -> int:
    config = load_config() if config is None else config
    value = config.get('STDIO_LIMIT')
    if not value:
        return DEFAULT_LIMIT
    try:
        limit = int(value)
    except ValueError:
        logger.warning(f"Ignoring invalid STDIO_LIMIT={value!r}")
        return DEFAULT_LIMIT
    return limit if limit > 0 else DEFAULT_LIMIT


def get_dialect_file(config: dict = None) -> Optional[str]:
    config = load_config() if config is None else config
    return config.get('JUNIT_REPORT_DIALECTS') or None
