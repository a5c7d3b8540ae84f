"""CLI configuration: config file loading and runtime overrides.

Precedence, lowest to highest: built-in Constants, default config file
locations, ``--config`` file, CLI flags.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import yaml

from constants import Constants, _load_yaml_config, apply_config, load_config_file
from common.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def load_config(args: Any) -> None:
    """Apply the --config file, or the first default config file found."""
    path = getattr(args, "CONFIG", None)
    if isinstance(path, str) and path.strip():
        try:
            apply_config(load_config_file(path.strip()))
            return
        except (OSError, ValueError, yaml.YAMLError) as exc:
            logger.warning("Could not load config file %s: %s", path, exc)
    apply_config(_load_yaml_config())


def apply_cli_overrides(args: Any) -> None:
    """Apply CLI flags over whatever the config files set."""
    if getattr(args, "FEED_URL", None):
        Constants.VERSIONS_FEED_URL = args.FEED_URL
    if getattr(args, "STALE_MINUTES", None) is not None:
        Constants.STALE_WINDOW_SEC = int(float(args.STALE_MINUTES) * 60)
    if getattr(args, "TIMEOUT", None) is not None:
        Constants.REQUEST_TIMEOUT = int(args.TIMEOUT)
        Constants.FEED_TIMEOUT_SEC = int(args.TIMEOUT)


def setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments."""
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)
