"""Adapters from platform tool names to external platform clients.

The CRM, lead-generation, social-listening and AI-sales categories only route
a tool call to a :class:`PlatformClient`.  Aitable and Muraena speak plain
HTTP and ship here; social and sales clients must be supplied by the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Protocol

import httpx

from ..errors import ToolExecutionError
from ..registry import AI_SALES, CRM, LEAD_GENERATION, SOCIAL_LISTENING, ToolRegistry
from .base import as_mapping, require_field

logger = logging.getLogger(__name__)

PLATFORM_TOOLS: Dict[str, tuple[str, ...]] = {
    CRM: ("aitable_create_record", "aitable_get_records", "aitable_update_record"),
    LEAD_GENERATION: ("muraena_search_people", "muraena_reveal_contact"),
    SOCIAL_LISTENING: ("social_monitor_mentions", "social_post_reply", "social_send_dm"),
    AI_SALES: (
        "analyze_sentiment",
        "identify_lead",
        "generate_sales_response",
        "qualify_lead_conversation",
    ),
}


class PlatformClient(Protocol):
    """Performs one named platform operation."""

    async def call(self, operation: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        ...


class _HttpPlatformClient:
    service = "platform"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        if not self.api_key:
            raise ToolExecutionError(f"{self.service} API key not configured")
        headers = {"Authorization": f"Bearer {self.api_key}"}
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=headers, **kwargs)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = exc.response.text or str(exc)
            try:
                message = exc.response.json().get("message", message)
            except ValueError:
                pass
            raise ToolExecutionError(f"{self.service} error: {message}") from exc
        except httpx.HTTPError as exc:
            raise ToolExecutionError(f"{self.service} error: {exc}") from exc
        return response.json()


class AitableClient(_HttpPlatformClient):
    """Aitable.ai datasheet records as a CRM."""

    service = "Aitable CRM"

    async def call(self, operation: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        datasheet = require_field(payload, "datasheet_id", operation)
        path = f"/datasheets/{datasheet}/records"

        if operation == "aitable_create_record":
            fields = require_field(payload, "fields", operation)
            body = await self._request("POST", path, json={"records": [{"fields": fields}]})
            return {"success": True, "record_id": body["data"]["records"][0]["recordId"]}

        if operation == "aitable_get_records":
            params = {
                key: payload[key]
                for key in ("viewId", "filterByFormula", "maxRecords")
                if payload.get(key) is not None
            }
            body = await self._request("GET", path, params=params)
            return {"records": body["data"]["records"], "total": body["data"].get("total")}

        if operation == "aitable_update_record":
            record_id = require_field(payload, "record_id", operation)
            fields = require_field(payload, "fields", operation)
            await self._request(
                "PATCH", path, json={"records": [{"recordId": record_id, "fields": fields}]}
            )
            return {"success": True, "record_id": record_id}

        raise ToolExecutionError(f"Unsupported CRM operation: {operation}", operation)


class MuraenaClient(_HttpPlatformClient):
    """Muraena.ai B2B people search."""

    service = "Muraena"

    _SEARCH_FILTERS = ("job_title", "company_name", "industry", "location", "company_size", "limit")

    async def call(self, operation: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        if operation == "muraena_search_people":
            filters = payload.get("filters") or payload
            search = {k: filters[k] for k in self._SEARCH_FILTERS if filters.get(k)}
            body = await self._request("POST", "/people/search", json=search)
            profiles = body.get("data") or body.get("results") or []
            return {"profiles": profiles, "total_found": body.get("total") or len(profiles)}

        if operation == "muraena_reveal_contact":
            person_id = require_field(payload, "person_id", operation)
            body = await self._request("POST", "/people/reveal", json={"person_id": person_id})
            data = body.get("data") or body
            return {
                key: data.get(key)
                for key in ("email", "phone", "linkedin_url", "company", "job_title")
            }

        raise ToolExecutionError(f"Unsupported lead generation operation: {operation}", operation)


def register(registry: ToolRegistry, clients: Mapping[str, Optional[PlatformClient]]) -> None:
    """Register every platform tool, routing each category to ``clients[category]``.

    Categories without a client still register their tools so that calls fail
    with a clear configuration error instead of falling through to the
    generic handler.
    """
    for category, names in PLATFORM_TOOLS.items():
        client = clients.get(category)
        for name in names:
            registry.tool(category, name)(_make_handler(category, name, client))


def _make_handler(category: str, name: str, client: Optional[PlatformClient]):
    async def handler(tool_input: Dict[str, Any]) -> Dict[str, Any]:
        payload = as_mapping(tool_input, name)
        if client is None:
            raise ToolExecutionError(f"{name} requires a configured {category} client", name)
        logger.debug(f"Calling {category} client for {name}")
        return await client.call(name, payload)

    handler.__name__ = name
    return handler
