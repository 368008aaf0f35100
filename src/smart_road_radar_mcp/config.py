"""
Loads *radar_config.json* and fills in defaults for any missing keys.

The file location comes from ``SMART_ROAD_RADAR_CONFIG``; without it the
file is looked up in the current directory. A missing file just means
defaults.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from .transport.serial_connection import Parity, PortConfig, StopBits

logger = logging.getLogger(__name__)

CONFIG_ENV = "SMART_ROAD_RADAR_CONFIG"
DEFAULT_CONFIG_PATH = Path("radar_config.json")

_DEFAULT = {
    # serial line
    "serial_port": "/dev/ttyUSB0",
    "baud_rate": 115200,
    "byte_size": 8,
    "stop_bits": "one",             # "one", "one_point_five" or "two"
    "parity": "none",               # "none", "even", "odd", "mark", "space"
    "read_timeout": 1.0,            # seconds

    # protocol
    "attempts": 10,                 # frames read per command before giving up

    # run without hardware
    "simulate": False,

    "log_level": "INFO",
}


def config_path() -> Path:
    return Path(os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_PATH))


def load(path: str | Path | None = None) -> dict:
    path = Path(path) if path is not None else config_path()
    try:
        with open(path) as fh:
            user = json.load(fh)
    except FileNotFoundError:
        return dict(_DEFAULT)

    unknown = set(user) - set(_DEFAULT)
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))
    return {**_DEFAULT, **{k: v for k, v in user.items() if k in _DEFAULT}}


def port_config(cfg: dict) -> PortConfig:
    """Build the serial line settings from a loaded config."""
    try:
        stop_bits = StopBits[str(cfg["stop_bits"]).upper()]
        parity = Parity[str(cfg["parity"]).upper()]
    except KeyError as e:
        raise ValueError(f"Invalid serial setting {e}") from None
    return PortConfig(
        baud_rate=int(cfg["baud_rate"]),
        byte_size=int(cfg["byte_size"]),
        stop_bits=stop_bits,
        parity=parity,
        timeout=float(cfg["read_timeout"]),
    )
