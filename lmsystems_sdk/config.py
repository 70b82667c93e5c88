# lmsystems_sdk/config.py
# SPDX-License-Identifier: Apache-2.0

"""
Environment-backed defaults for the LMSystems SDK.

Values are read from the process environment at call time, never at import
time, so tests and host applications can change them without reloading the
module. Explicit constructor arguments always take precedence over anything
read here.

Environment variables
---------------------
- LMSYSTEMS_BASE_URL:  discovery service base URL
                       (default: https://api.lmsystems.ai)
- LMSYSTEMS_API_KEY:   marketplace API key used when none is passed explicitly
- LMSYSTEMS_TIMEOUT_S: discovery request timeout in seconds
                       (default: unset, meaning no timeout)
"""

from __future__ import annotations

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.lmsystems.ai"

BASE_URL_ENV = "LMSYSTEMS_BASE_URL"
API_KEY_ENV = "LMSYSTEMS_API_KEY"
TIMEOUT_ENV = "LMSYSTEMS_TIMEOUT_S"

#: Applied to MergedConfig when neither the proxy nor the call sets one.
DEFAULT_RECURSION_LIMIT = 100

GRAPH_INFO_PATH = "/api/get_graph_info"


def _env_str(name: str) -> Optional[str]:
    """Return a stripped environment value, or None when unset/blank."""
    val = os.getenv(name)
    if val is None:
        return None
    val = val.strip()
    return val or None


def _env_float(name: str) -> Optional[float]:
    """
    Parse a float environment variable.

    Unparseable or non-positive values are ignored with a warning rather than
    failing at import/construction time.
    """
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number", name, raw)
        return None
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive", name, raw)
        return None
    return value


def get_base_url(base_url: Optional[str] = None) -> str:
    """Resolve the discovery base URL (argument > env > default), without a trailing slash."""
    url = base_url or _env_str(BASE_URL_ENV) or DEFAULT_BASE_URL
    return url.rstrip("/")


def get_api_key(api_key: Optional[str] = None) -> Optional[str]:
    """Resolve the marketplace API key (argument > env)."""
    return api_key or _env_str(API_KEY_ENV)


def get_timeout(timeout: Optional[float] = None) -> Optional[float]:
    """Resolve the discovery timeout in seconds (argument > env > None)."""
    if timeout is not None:
        return float(timeout)
    return _env_float(TIMEOUT_ENV)


__all__ = [
    "API_KEY_ENV",
    "BASE_URL_ENV",
    "DEFAULT_BASE_URL",
    "DEFAULT_RECURSION_LIMIT",
    "GRAPH_INFO_PATH",
    "TIMEOUT_ENV",
    "get_api_key",
    "get_base_url",
    "get_timeout",
]
