# lmsystems_sdk/exceptions.py
# SPDX-License-Identifier: Apache-2.0

"""
Error taxonomy for the LMSystems SDK.

Every failure surfaced by the SDK is an `LmsystemsError` subclass so callers
can branch on the failure category instead of matching message strings:

- AuthenticationError     invalid or missing marketplace API key
- GraphError              unknown graph name, or graph not purchased
- InputError              caller input has the wrong shape
- APIError                transport/backend failure, malformed responses,
                          unhandled HTTP statuses
- ConfigurationError      required configuration missing or unusable
- StreamError             failure while consuming a remote stream
- MessageCoercionError    upstream payload cannot be turned into a message
- MessageValidationError  upstream payload has the right kind but bad fields

Messages are written for the developer integrating the SDK: each one carries
the remediation steps needed to fix the problem. Machine-readable data lives in
`code` and `details`, never inside the message text.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

ACCOUNT_URL = "https://www.lmsystems.ai/account"
MARKETPLACE_URL = "https://www.lmsystems.ai/marketplace"
SUPPORT_EMAIL = "sean@lmsystems.ai"

_SECRET_MARKERS = ("key", "token", "secret", "password")


def _mask_secrets(value: Any) -> Any:
    """Replace values under secret-looking keys before echoing config back."""
    if isinstance(value, Mapping):
        out = {}
        for k, v in value.items():
            if isinstance(k, str) and any(m in k.lower() for m in _SECRET_MARKERS):
                out[k] = "***"
            else:
                out[k] = _mask_secrets(v)
        return out
    if isinstance(value, (list, tuple)):
        return [_mask_secrets(v) for v in value]
    return value


def _pretty(value: Any) -> str:
    try:
        return json.dumps(value, indent=2, default=str)
    except (TypeError, ValueError):
        return repr(value)


class LmsystemsError(Exception):
    """
    Base exception for all SDK errors.

    Attributes:
        message: Human-readable, actionable description.
        code: Machine-readable, UPPER_SNAKE_CASE error code.
        details: Additional machine context (no secrets).
    """

    default_code = "LMSYSTEMS_ERROR"

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = dict(details or {})

    def __str__(self) -> str:
        return self.message or self.__class__.__name__


class AuthenticationError(LmsystemsError):
    """The marketplace rejected the API key."""

    default_code = "AUTHENTICATION_ERROR"

    def __init__(self, message: str, **kw: Any):
        super().__init__(
            f"Authentication failed: {message}\n"
            "To get your API key:\n"
            f"1. Visit {ACCOUNT_URL}\n"
            "2. Navigate to the API Keys section\n"
            "3. Create a new key or copy your existing key",
            **kw,
        )


class GraphError(LmsystemsError):
    """
    The graph cannot be used by this caller.

    `reason` is "not_found" or "not_purchased" when the discovery service
    said so, and None otherwise.
    """

    default_code = "GRAPH_ERROR"

    _CODES = {
        "not_found": "GRAPH_NOT_FOUND",
        "not_purchased": "GRAPH_NOT_PURCHASED",
    }

    def __init__(
        self,
        message: str,
        graph_name: Optional[str] = None,
        *,
        reason: Optional[str] = None,
        **kw: Any,
    ):
        text = f"Graph error: {message}"
        if graph_name:
            text += (
                "\n\nPossible solutions:\n"
                f'1. Verify "{graph_name}" is the correct graph name\n'
                f"2. Check if you have purchased this graph at {MARKETPLACE_URL}\n"
                "3. Ensure your account has active access to this graph"
            )
        kw.setdefault("code", self._CODES.get(reason or "", self.default_code))
        details = dict(kw.pop("details", None) or {})
        if graph_name:
            details.setdefault("graph_name", graph_name)
        super().__init__(text, details=details, **kw)
        self.graph_name = graph_name
        self.reason = reason


class InputError(LmsystemsError):
    """Caller-supplied input has the wrong shape."""

    default_code = "INPUT_ERROR"

    def __init__(self, message: str, **kw: Any):
        super().__init__(
            f"Input error: {message}\n"
            "Graph input must be a mapping of state keys to values, "
            'e.g. {"messages": [{"role": "user", "content": "..."}]}',
            **kw,
        )


class APIError(LmsystemsError):
    """Transport or backend failure, including malformed responses."""

    default_code = "API_ERROR"

    _STATUS_HINTS = {
        429: "Rate limit exceeded. Please wait before making more requests.",
        500: f"Server error. If this persists, please contact {SUPPORT_EMAIL}",
        503: "Service temporarily unavailable. Please try again later.",
    }

    def __init__(self, message: str, status_code: Optional[int] = None, **kw: Any):
        text = f"API error: {message}"
        hint = self._STATUS_HINTS.get(status_code) if status_code else None
        if hint:
            text += f"\n\n{hint}"
        details = dict(kw.pop("details", None) or {})
        if status_code is not None:
            details.setdefault("status_code", status_code)
        super().__init__(text, details=details, **kw)
        self.status_code = status_code


class ConfigurationError(LmsystemsError):
    """A required configuration field is missing or unusable."""

    default_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, config: Optional[Mapping[str, Any]] = None, **kw: Any):
        text = f"Configuration error: {message}"
        if config:
            text += (
                "\n\nProvided configuration:\n"
                f"{_pretty(_mask_secrets(config))}"
                "\n\nMake sure to include any required API keys or settings "
                "your graph needs in the config['configurable'] mapping."
            )
        super().__init__(text, **kw)


class StreamError(LmsystemsError):
    """Failure while consuming a remote stream."""

    default_code = "STREAM_ERROR"

    def __init__(self, message: str, thread_id: Optional[str] = None, **kw: Any):
        text = f"Streaming error: {message}"
        if thread_id:
            text += (
                f"\n\nThread ID: {thread_id}\n"
                "This error occurred while streaming responses. Possible solutions:\n"
                "1. Check your network connection\n"
                "2. Verify all required configuration values are provided\n"
                "3. Ensure your graph is still active and accessible"
            )
        details = dict(kw.pop("details", None) or {})
        if thread_id:
            details.setdefault("thread_id", thread_id)
        super().__init__(text, details=details, **kw)
        self.thread_id = thread_id


class MessageCoercionError(LmsystemsError):
    """An upstream payload could not be turned into a message."""

    default_code = "MESSAGE_COERCION_ERROR"

    def __init__(self, message: str, details: Any = None, **kw: Any):
        text = f"Message format error: {message}"
        if details is not None:
            text += f"\n\nDetails:\n{_pretty(details)}"
        text += (
            '\n\nEnsure your messages follow the format: '
            '{"type": "human" | "ai" | "function", "content": str}'
        )
        super().__init__(text, details={"payload": details} if details is not None else None, **kw)


class MessageValidationError(LmsystemsError):
    """An upstream payload has the expected kind but invalid fields."""

    default_code = "MESSAGE_VALIDATION_ERROR"

    def __init__(self, message: str, details: Any = None, **kw: Any):
        text = f"Message validation failed: {message}"
        if details is not None:
            text += f"\nDetails: {_pretty(details)}"
        super().__init__(text, details={"payload": details} if details is not None else None, **kw)


__all__ = [
    "LmsystemsError",
    "AuthenticationError",
    "GraphError",
    "InputError",
    "APIError",
    "ConfigurationError",
    "StreamError",
    "MessageCoercionError",
    "MessageValidationError",
]
