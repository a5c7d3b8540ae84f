"""Constants used in the project."""

import json
import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

import yaml


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    NOT_FOUND = 1
    CONNECTION_ERROR = 2
    FILE_ERROR = 3


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    RUBYGEMS_ORG_URL = "https://rubygems.org"
    RUBYGEMS_ORG_HOST = "rubygems.org"
    DEFAULT_REGISTRY_URLS = [RUBYGEMS_ORG_URL]
    VERSIONS_FEED_URL = "https://rubygems.org/versions"
    INFO_PATH = "/api/v1/gems"
    VERSIONS_PATH = "/api/v1/versions"

    # Delta feed format
    FEED_SEPARATOR_LINE = "---"
    FEED_COMMENT_PREFIX = "created_at:"
    REMOVAL_MARKER = "-"

    STALE_WINDOW_SEC = 5 * 60
    FEED_TIMEOUT_SEC = 60
    REQUEST_TIMEOUT = 30  # Timeout in seconds for fallback HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    USER_AGENT = "gemindex/0.1"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "GEMINDEX_LOG_LEVEL"
    ENV_CONFIG = "GEMINDEX_CONFIG"
    DEFAULT_CONFIG_PATHS = [
        "gemindex.yml",
        "gemindex.yaml",
        os.path.join("~", ".config", "gemindex", "gemindex.yml"),
    ]


# Config keys under the "rubygems" section and the Constants attribute they set.
_CONFIG_KEYS = {
    "registry_url": ("RUBYGEMS_ORG_URL", str),
    "registry_host": ("RUBYGEMS_ORG_HOST", str),
    "registry_urls": ("DEFAULT_REGISTRY_URLS", list),
    "feed_url": ("VERSIONS_FEED_URL", str),
    "stale_window_sec": ("STALE_WINDOW_SEC", int),
    "feed_timeout_sec": ("FEED_TIMEOUT_SEC", int),
    "request_timeout_sec": ("REQUEST_TIMEOUT", int),
    "http_retry_max": ("HTTP_RETRY_MAX", int),
    "user_agent": ("USER_AGENT", str),
}


def load_config_file(path: str) -> Dict[str, Any]:
    """Read a YAML or JSON config file; the format is picked by extension.

    Returns an empty dict when the file is empty or not a mapping.
    """
    with open(os.path.expanduser(path), "r", encoding="utf-8") as fh:
        if path.lower().endswith(".json"):
            data = json.load(fh)
        else:
            data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def _load_yaml_config() -> Optional[Dict[str, Any]]:
    """Load the first config file found in the default locations.

    GEMINDEX_CONFIG wins over the default search paths. Unreadable or
    invalid files are logged and skipped.
    """
    candidates = []
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path and env_path.strip():
        candidates.append(env_path.strip())
    candidates.extend(Constants.DEFAULT_CONFIG_PATHS)

    for candidate in candidates:
        path = os.path.expanduser(candidate)
        if not os.path.isfile(path):
            continue
        try:
            return load_config_file(path)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            logging.getLogger(__name__).warning("Ignoring config file %s: %s", path, exc)
    return None


def apply_config(cfg: Optional[Dict[str, Any]]) -> None:
    """Apply the "rubygems" section of a config mapping onto Constants."""
    if not isinstance(cfg, dict):
        return
    section = cfg.get("rubygems")
    if not isinstance(section, dict):
        return
    for key, (attr, kind) in _CONFIG_KEYS.items():
        if key not in section or section[key] is None:
            continue
        value = section[key]
        try:
            if kind is list:
                value = [str(v) for v in value] if isinstance(value, (list, tuple)) else [str(value)]
            else:
                value = kind(value)
        except (TypeError, ValueError):
            logging.getLogger(__name__).warning("Invalid value for rubygems.%s: %r", key, value)
            continue
        setattr(Constants, attr, value)
