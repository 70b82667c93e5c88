# lmsystems_sdk/graph/merging.py
# SPDX-License-Identifier: Apache-2.0

"""
Input and run-config merging for purchased graphs.

Merging is shallow and per-call values always win:

    merged input  = {**default_state_values, **input}
    configurable  = {**endpoint defaults, **proxy config, **call config}
    tags          = call tags or proxy tags or []
    recursion     = call limit or proxy limit or DEFAULT_RECURSION_LIMIT

None of the inputs are mutated.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from lmsystems_sdk.config import DEFAULT_RECURSION_LIMIT
from lmsystems_sdk.exceptions import ConfigurationError, InputError


def _as_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(
            f"{what} must be a mapping, got {type(value).__name__}"
        )
    return value


def merge_input(
    defaults: Optional[Mapping[str, Any]],
    input: Any,
) -> Dict[str, Any]:
    """
    Overlay the per-call input on the proxy's default state values.

    Raises:
        InputError: when `input` is neither None nor a mapping.
    """
    if input is None:
        input = {}
    elif not isinstance(input, Mapping):
        raise InputError(f"expected a mapping, got {type(input).__name__}")
    return {**(defaults or {}), **input}


def merge_run_config(
    default_configurable: Optional[Mapping[str, Any]],
    base_config: Optional[Mapping[str, Any]] = None,
    call_config: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build the run config sent to the remote graph.

    Keys other than `configurable`, `tags` and `recursion_limit` on the call
    config (e.g. `metadata`, `run_name`) are carried through unchanged.
    """
    base = _as_mapping(base_config, "config")
    call = _as_mapping(call_config, "call config")

    configurable = {
        **(default_configurable or {}),
        **_as_mapping(base.get("configurable"), "config['configurable']"),
        **_as_mapping(call.get("configurable"), "call config['configurable']"),
    }

    merged: Dict[str, Any] = {
        k: v
        for k, v in call.items()
        if k not in ("configurable", "tags", "recursion_limit")
    }
    merged["configurable"] = configurable
    merged["tags"] = list(call.get("tags") or base.get("tags") or [])
    merged["recursion_limit"] = (
        call.get("recursion_limit")
        or base.get("recursion_limit")
        or DEFAULT_RECURSION_LIMIT
    )
    return merged


__all__ = [
    "merge_input",
    "merge_run_config",
]
