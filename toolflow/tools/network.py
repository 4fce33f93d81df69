"""HTTP request tool."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ..errors import ToolExecutionError
from ..registry import NETWORK, ToolRegistry
from .base import require_field


def _decode_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            pass
    return response.text


def register(registry: ToolRegistry, client: Optional[httpx.AsyncClient] = None) -> None:
    """Register ``http_request``.

    ``client`` is shared by every request; when omitted a short-lived client
    is opened per call.
    """

    @registry.tool(NETWORK, "http_request")
    async def http_request(tool_input: Dict[str, Any]) -> Dict[str, Any]:
        url = require_field(tool_input, "url", "http_request")
        method = str(tool_input.get("method") or "GET").upper()
        body = tool_input.get("body")
        kwargs: Dict[str, Any] = {
            "headers": tool_input.get("headers") or {},
            "params": tool_input.get("params"),
        }
        if isinstance(body, (dict, list)):
            kwargs["json"] = body
        elif body is not None:
            kwargs["content"] = str(body)

        if client is not None:
            response = await client.request(method, url, **kwargs)
        else:
            async with httpx.AsyncClient() as owned:
                response = await owned.request(method, url, **kwargs)

        if response.is_error:
            raise ToolExecutionError(
                f"HTTP {response.status_code} from {method} {url}", "http_request"
            )

        return {
            "status": response.status_code,
            "headers": dict(response.headers),
            "body": _decode_body(response),
        }
