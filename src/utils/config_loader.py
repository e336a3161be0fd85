import configparser
import os
from dataclasses import dataclass

from .paths import get_config_path

# Moodle's local_ace defaults: one-week display periods, twelve weeks of history.
DEFAULT_ENGAGEMENT = {
    'display_period': '604800',
    'user_history': '7257600',
    'table_prefix': 'mdl_',
    'max_workers': '4',
}


@dataclass(frozen=True)
class EngagementSettings:
    """Explicit chart settings handed to the sample fetcher instead of global state."""
    display_period: int = 604800
    user_history: int = 7257600
    table_prefix: str = 'mdl_'
    max_workers: int = 4


# Student samples are truncated to whole days, so shorter periods collapse to nothing
MIN_DISPLAY_PERIOD = 86400


def load_config(config_path=None, require_moodle=True):
    """
    Loads the configuration from the 'config.ini' file.
    By default the file is looked up in the project root (or next to the executable when frozen).
    The [MOODLE] section is only mandatory when require_moodle is set (web-service calls).

    Returns:
        ConfigParser: the parsed file, with the [ENGAGEMENT] section filled with defaults.
    """
    if config_path is None:
        config_path = get_config_path('config.ini')

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found at: {config_path}")

    config = configparser.ConfigParser()
    config.read(config_path)

    # The Moodle section is needed by the web-service client
    if require_moodle and 'MOODLE' not in config:
        raise ValueError("config.ini is missing the [MOODLE] section")

    if 'ENGAGEMENT' not in config:
        config['ENGAGEMENT'] = {}
    for key, value in DEFAULT_ENGAGEMENT.items():
        config['ENGAGEMENT'].setdefault(key, value)

    print(f"Configuration loaded successfully from: {config_path}")
    return config


def get_engagement_settings(config) -> EngagementSettings:
    """Builds the EngagementSettings struct from a loaded config."""
    section = config['ENGAGEMENT']
    try:
        settings = EngagementSettings(
            display_period=int(section.get('display_period', DEFAULT_ENGAGEMENT['display_period'])),
            user_history=int(section.get('user_history', DEFAULT_ENGAGEMENT['user_history'])),
            table_prefix=section.get('table_prefix', DEFAULT_ENGAGEMENT['table_prefix']).strip(),
            max_workers=int(section.get('max_workers', DEFAULT_ENGAGEMENT['max_workers'])),
        )
    except ValueError as e:
        raise ValueError(f"Invalid value in [ENGAGEMENT]: {e}") from e

    if settings.display_period < MIN_DISPLAY_PERIOD:
        raise ValueError(f"display_period must be at least {MIN_DISPLAY_PERIOD} seconds (one day)")
    if settings.user_history <= 0:
        raise ValueError("user_history must be a positive number of seconds")
    if settings.max_workers < 1:
        raise ValueError("max_workers must be at least 1")
    if not settings.table_prefix.replace('_', '').isalnum():
        raise ValueError(f"Invalid table prefix: {settings.table_prefix!r}")

    return settings
