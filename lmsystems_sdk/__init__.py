# lmsystems_sdk/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
LMSystems SDK - Public API

Use graphs purchased on the LMSystems marketplace as if they were local
LangGraph graphs.
"""

from lmsystems_sdk.client import LmsystemsClient
from lmsystems_sdk.exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    GraphError,
    InputError,
    LmsystemsError,
    MessageCoercionError,
    MessageValidationError,
    StreamError,
)
from lmsystems_sdk.graph import (
    EndpointInfo,
    EndpointResolver,
    InitializationState,
    PurchasedGraph,
    StateUpdate,
)

__version__ = "1.0.0"

__all__ = [
    "PurchasedGraph",
    "LmsystemsClient",

    # Models
    "EndpointInfo",
    "EndpointResolver",
    "InitializationState",
    "StateUpdate",

    # Errors
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
