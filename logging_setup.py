# -*- coding: utf-8 -*-
########################
# logging_setup.py
########################
# Purpose:
# - Configure python logging once for the app, the CLI and the simulator.
#
# Design notes:
# - Modules only ever call logging.getLogger(__name__). This is the one place handlers are set up.
# - Does nothing when the root logger already has handlers (pytest, embedding hosts).
# - Level priority (highest first): env WAYBEAT_LOG_LEVEL, explicit level argument (CLI
#   --log-level), config logging.level, INFO.
#
########################
# Interfaces:
# Public functions:
# - parse_level(text: Optional[str]) -> Optional[int]
# - setup_logging(level: Optional[str] = None, *, config_level: Optional[str] = None) -> int
#
########################

from __future__ import annotations

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def parse_level(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    value = str(text).strip().upper()
    if not value:
        return None
    mapping = {
        "CRITICAL": logging.CRITICAL,
        "ERROR": logging.ERROR,
        "WARNING": logging.WARNING,
        "WARN": logging.WARNING,
        "INFO": logging.INFO,
        "DEBUG": logging.DEBUG,
    }
    return mapping.get(value)


def setup_logging(level: Optional[str] = None, *, config_level: Optional[str] = None) -> int:
    """Configure root logging and return the effective level."""
    resolved = logging.INFO
    for candidate in (config_level, level, os.environ.get("WAYBEAT_LOG_LEVEL")):
        parsed = parse_level(candidate)
        if parsed is not None:
            resolved = parsed

    root = logging.getLogger()
    if root.handlers:
        return int(root.level)

    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    logging.getLogger("waybeat").debug("logging initialized (level=%s)", logging.getLevelName(resolved))
    return int(resolved)


def _run_unit_tests() -> None:
    assert parse_level("debug") == logging.DEBUG
    assert parse_level(" Warn ") == logging.WARNING
    assert parse_level("") is None
    assert parse_level("loud") is None


if __name__ == "__main__":
    _run_unit_tests()
    print("logging_setup.py: ok")
