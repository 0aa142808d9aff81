from __future__ import annotations

import logging
import os
import re
from typing import Any

import httpx

from . import settings

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def _api_url(path: str) -> str:
    base = f"{settings.HA_URL}/api" if settings.HA_URL else settings.SUPERVISOR_API_URL
    return f"{base}{path}"


async def _post(path: str, payload: dict[str, Any] | None = None) -> Any:
    token = os.environ.get("SUPERVISOR_TOKEN")
    headers = {"Authorization": f"Bearer {token}"}
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        response = await client.post(_api_url(path), headers=headers, json=payload or {})
    response.raise_for_status()
    if not response.content:
        return None
    return response.json()


async def _get(path: str) -> Any:
    token = os.environ.get("SUPERVISOR_TOKEN")
    headers = {"Authorization": f"Bearer {token}"}
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        response = await client.get(_api_url(path), headers=headers)
    response.raise_for_status()
    return response.json()


async def call_service(domain: str, service: str, data: dict[str, Any] | None = None) -> Any:
    if not os.environ.get("SUPERVISOR_TOKEN"):
        logger.info("No supervisor token available; skipping %s.%s", domain, service)
        return None
    result = await _post(f"/services/{domain}/{service}", data)
    logger.info("Called %s.%s", domain, service)
    return result


async def check_config() -> dict[str, Any]:
    if not os.environ.get("SUPERVISOR_TOKEN"):
        return {"result": "valid", "errors": None}
    result = await _post("/config/core/check_config")
    logger.info("Config check result: %s", (result or {}).get("result"))
    return result or {}


def slugify_item_id(item_id: str) -> str:
    return _WHITESPACE.sub("_", item_id.lower())


def entity_id_for(domain: str, item_id: str, entity_id: str | None = None) -> str:
    if entity_id:
        return entity_id
    return f"{domain}.{slugify_item_id(item_id)}"


async def run_item(domain: str, item_id: str, entity_id: str | None = None) -> None:
    """Trigger an automation or start a script."""

    if domain == "automation":
        await call_service("automation", "trigger", {"entity_id": entity_id_for(domain, item_id, entity_id)})
        return
    if domain == "script":
        service = slugify_item_id(item_id)
        if entity_id and entity_id.startswith("script."):
            service = entity_id[len("script."):]
        await call_service("script", service, {})
        return
    raise ValueError("Invalid domain")


async def toggle_item(domain: str, item_id: str, enabled: bool, entity_id: str | None = None) -> None:
    if domain not in {"automation", "script"}:
        raise ValueError("Invalid domain")
    service = "turn_on" if enabled else "turn_off"
    await call_service(domain, service, {"entity_id": entity_id_for(domain, item_id, entity_id)})


async def get_states() -> list[dict[str, Any]]:
    if not os.environ.get("SUPERVISOR_TOKEN"):
        logger.info("No supervisor token available; returning no states")
        return []
    return await _get("/states") or []


async def list_entities(domain: str | None = None) -> list[dict[str, Any]]:
    """Entity picker rows built from the current states, sorted by friendly name."""

    entities = []
    for state in await get_states():
        entity_id = state.get("entity_id") or ""
        entity_domain, _, object_id = entity_id.partition(".")
        if domain and entity_domain != domain:
            continue
        attributes = state.get("attributes") or {}
        entities.append(
            {
                "entity_id": entity_id,
                "friendly_name": attributes.get("friendly_name") or object_id,
                "domain": entity_domain,
                "state": state.get("state"),
                "icon": attributes.get("icon"),
            }
        )
    entities.sort(key=lambda entity: str(entity["friendly_name"]).lower())
    return entities


async def list_services() -> list[dict[str, Any]]:
    if not os.environ.get("SUPERVISOR_TOKEN"):
        logger.info("No supervisor token available; returning no services")
        return []
    services = []
    for domain_data in await _get("/services") or []:
        domain = domain_data.get("domain")
        for name, data in (domain_data.get("services") or {}).items():
            data = data or {}
            services.append(
                {
                    "service_id": f"{domain}.{name}",
                    "domain": domain,
                    "name": data.get("name") or name,
                    "description": data.get("description") or "",
                    "fields": data.get("fields") or {},
                }
            )
    services.sort(key=lambda service: service["service_id"])
    return services
