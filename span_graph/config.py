"""Environment driven defaults for span graph layouts.

Values are read once at import time, after loading a ``.env`` file if one is
found from the current working directory.
"""

import os
import logging
from typing import Optional, Tuple

from dotenv import load_dotenv, find_dotenv

load_dotenv(find_dotenv(usecwd=True), override=False)

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment.

    Unrecognised values fall back to ``default`` with a warning.
    """
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    logger.warning(f"Ignoring invalid boolean for {name}: {raw!r}")
    return default


def _env_int(name: str) -> Optional[int]:
    """Read an optional integer from the environment."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid integer for {name}: {raw!r}")
        return None


def _env_choice(name: str, choices: Tuple[str, ...], default: str) -> str:
    """Read one of ``choices`` from the environment, case-insensitively.

    Unrecognised values fall back to ``default`` with a warning.
    """
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in choices:
        return value
    logger.warning(f"Ignoring invalid value for {name}: {raw!r}, expected one of {list(choices)}")
    return default


# Defaults for LayoutOptions
LAYOUT_MODES = ("dagre", "physics")
DEFAULT_LAYOUT_MODE = _env_choice("SPAN_GRAPH_LAYOUT_MODE", LAYOUT_MODES, "dagre")
DEFAULT_SHOW_SYSTEM_NODES = _env_bool("SPAN_GRAPH_SHOW_SYSTEM_NODES", True)
DEFAULT_GROUP_BY_STEP = _env_bool("SPAN_GRAPH_GROUP_BY_STEP", True)

# Unset means the physics layout draws from an unseeded generator
PHYSICS_SEED = _env_int("SPAN_GRAPH_PHYSICS_SEED")

LOG_LEVEL = os.getenv("SPAN_GRAPH_LOG_LEVEL", "INFO").strip().upper()
