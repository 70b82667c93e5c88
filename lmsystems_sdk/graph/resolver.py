# lmsystems_sdk/graph/resolver.py
# SPDX-License-Identifier: Apache-2.0

"""
Credential/Endpoint resolution for purchased graphs.

Turns a logical graph name plus a marketplace API key into the concrete
endpoint URL and per-graph credential of the LangGraph deployment that serves
it, with one authenticated call to the discovery service:

    POST {base_url}/api/get_graph_info
    Authorization: Bearer <api_key>
    {"graph_name": "<name>"}

    200 → {"graph_name", "graph_url", "lgraph_api_key",
           "configurables"?, "assistant_id"?}

Status mapping
--------------
- 401            → AuthenticationError
- 403            → GraphError (not purchased)
- 404            → GraphError (not found)
- other non-2xx  → APIError (status_code set)
- transport      → APIError
- bad body       → APIError (malformed response)

No retries happen here; a failed resolution is reported once and the caller
decides what to do with it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import httpx

from lmsystems_sdk.config import GRAPH_INFO_PATH, get_base_url, get_timeout
from lmsystems_sdk.exceptions import (
    APIError,
    AuthenticationError,
    GraphError,
)

logger = logging.getLogger(__name__)

_MAX_ERROR_BODY_CHARS = 500


@dataclass(frozen=True)
class EndpointInfo:
    """
    Resolved endpoint for one purchased graph.

    Attributes:
        graph_name: Name of the graph on the remote deployment.
        endpoint_url: Base URL of the LangGraph deployment.
        endpoint_api_key: Credential for that deployment (never shown in repr).
        default_config: Default `configurable` values shipped with the graph.
        assistant_id: Assistant to run, when the deployment exposes one.
    """

    graph_name: str
    endpoint_url: str
    endpoint_api_key: str = field(repr=False)
    default_config: Mapping[str, Any] = field(default_factory=dict)
    assistant_id: Optional[str] = None

    @property
    def assistant(self) -> str:
        """Identifier used to address the graph on the deployment."""
        return self.assistant_id or self.graph_name


def _body_excerpt(response: httpx.Response) -> str:
    try:
        text = response.text
    except Exception:  # noqa: BLE001
        return "<unreadable body>"
    if len(text) > _MAX_ERROR_BODY_CHARS:
        return text[:_MAX_ERROR_BODY_CHARS] + "..."
    return text


def _raise_for_status(response: httpx.Response, graph_name: str) -> None:
    status = response.status_code
    if response.is_success:
        return

    logger.warning(
        "Graph discovery for %r failed with HTTP %d", graph_name, status
    )
    if status == 401:
        raise AuthenticationError("Invalid API key")
    if status == 403:
        raise GraphError(
            f"Graph '{graph_name}' has not been purchased",
            graph_name,
            reason="not_purchased",
        )
    if status == 404:
        raise GraphError(
            f"Graph '{graph_name}' not found",
            graph_name,
            reason="not_found",
        )
    raise APIError(
        f"Backend API error (HTTP {status}): {_body_excerpt(response)}",
        status_code=status,
    )


def parse_graph_info(payload: Any, graph_name: str) -> EndpointInfo:
    """
    Validate a discovery response body and build an EndpointInfo.

    Raises:
        APIError: when required fields are missing, empty, or mistyped.
    """
    if not isinstance(payload, Mapping):
        raise APIError(
            f"Malformed graph info response: expected a JSON object, got {type(payload).__name__}"
        )

    missing = [
        key
        for key in ("graph_url", "lgraph_api_key")
        if not isinstance(payload.get(key), str) or not payload.get(key)
    ]
    if missing:
        raise APIError(
            "Malformed graph info response: missing " + ", ".join(missing),
            details={"missing": missing},
        )

    configurables = payload.get("configurables")
    if configurables is None:
        configurables = {}
    elif not isinstance(configurables, Mapping):
        raise APIError(
            "Malformed graph info response: 'configurables' must be an object"
        )

    assistant_id = payload.get("assistant_id")
    return EndpointInfo(
        graph_name=str(payload.get("graph_name") or graph_name),
        endpoint_url=payload["graph_url"],
        endpoint_api_key=payload["lgraph_api_key"],
        default_config=dict(configurables),
        assistant_id=str(assistant_id) if assistant_id else None,
    )


class EndpointResolver:
    """
    Client for the graph discovery service.

    Parameters
    ----------
    base_url:
        Discovery service base URL. Defaults to `LMSYSTEMS_BASE_URL` or the
        production endpoint.
    client:
        Pre-configured `httpx.AsyncClient`. When given it is used as-is and
        never closed here; otherwise a short-lived client is opened per call.
    timeout:
        Request timeout in seconds. Defaults to `LMSYSTEMS_TIMEOUT_S`, or no
        timeout when that is unset. Ignored when `client` is given.
    headers:
        Extra request headers (the Authorization header always wins).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.base_url = get_base_url(base_url)
        self._client = client
        self._timeout = get_timeout(timeout)
        self._headers: Dict[str, str] = dict(headers or {})

    @property
    def graph_info_url(self) -> str:
        return f"{self.base_url}{GRAPH_INFO_PATH}"

    async def resolve(self, graph_name: str, api_key: str) -> EndpointInfo:
        """Perform exactly one discovery call and return the resolved endpoint."""
        headers = {
            **self._headers,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        body = {"graph_name": graph_name}

        logger.info("Resolving graph %r via %s", graph_name, self.base_url)
        try:
            if self._client is not None:
                response = await self._client.post(self.graph_info_url, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self.graph_info_url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise APIError(f"Failed to communicate with server: {exc}") from exc

        _raise_for_status(response, graph_name)

        try:
            payload = response.json()
        except ValueError as exc:
            raise APIError(
                f"Malformed graph info response: body is not JSON ({_body_excerpt(response)})"
            ) from exc

        info = parse_graph_info(payload, graph_name)
        logger.info("Resolved graph %r to %s", info.graph_name, info.endpoint_url)
        return info


async def resolve_endpoint(
    graph_name: str,
    api_key: str,
    base_url: Optional[str] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> EndpointInfo:
    """One-shot helper around `EndpointResolver.resolve`."""
    resolver = EndpointResolver(base_url, client=client, timeout=timeout)
    return await resolver.resolve(graph_name, api_key)


__all__ = [
    "EndpointInfo",
    "EndpointResolver",
    "parse_graph_info",
    "resolve_endpoint",
]
