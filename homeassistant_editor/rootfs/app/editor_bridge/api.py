from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi import Body, FastAPI, HTTPException
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from . import automations, folders, ha_services, scripts, settings, traces
from .mutations import EditorError
from .yaml_tags import tagged_to_json

logger = logging.getLogger(__name__)

app = FastAPI(title="Home Assistant Editor")
app.mount("/static", StaticFiles(directory=settings.STATIC_DIR, check_dir=False), name="static")


def _editor_error(exc: EditorError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))


def _ha_error(exc: httpx.HTTPError) -> HTTPException:
    logger.error("Home Assistant request failed: %s", exc)
    return HTTPException(status_code=502, detail=f"Home Assistant API error: {exc}")


def _yaml_body(payload: dict[str, Any]) -> Any:
    """Parse a `{"yaml": text}` body on the server so `!secret` and friends keep their tags."""

    content = payload["yaml"]
    if not isinstance(content, str):
        raise HTTPException(status_code=400, detail="YAML content must be a string")
    try:
        return automations.yaml_to_automation(content)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _automation_body(payload: dict[str, Any]) -> dict[str, Any]:
    if set(payload) != {"yaml"}:
        return payload
    config = _yaml_body(payload)
    errors = automations.validate_automation(config)
    if errors:
        raise HTTPException(status_code=400, detail=". ".join(errors))
    return config


def _script_body(payload: dict[str, Any]) -> dict[str, Any]:
    if set(payload) != {"yaml"}:
        return payload
    config = _yaml_body(payload)
    if not isinstance(config, dict):
        raise HTTPException(status_code=400, detail="Script must be a YAML map")
    if len(config) == 1:
        ((key, value),) = config.items()
        if key not in scripts.SCRIPT_KEYS and isinstance(value, dict):
            config = {"id": str(key), **value}
    return config


@app.get("/")
async def index() -> FileResponse:
    return FileResponse(settings.STATIC_DIR / "index.html")


@app.get("/health")
async def health() -> JSONResponse:
    return JSONResponse({"status": "ok", "config_path": str(settings.CONFIG_DIR)})


@app.get("/api/automations")
async def api_automations() -> JSONResponse:
    records = automations.extract_automations(settings.CONFIG_DIR)
    return JSONResponse({"success": True, "automations": [record.as_dict() for record in records]})


@app.get("/api/automation/{automation_id}")
async def api_automation(automation_id: str) -> JSONResponse:
    record = automations.get_automation(automation_id, settings.CONFIG_DIR)
    if record is None:
        raise HTTPException(status_code=404, detail="Automation not found")
    return JSONResponse(
        {
            "success": True,
            "automation": record.as_dict(),
            "yaml": automations.automation_to_yaml(record),
        }
    )


@app.get("/api/automation/{automation_id}/raw-yaml")
async def api_automation_raw_yaml(automation_id: str) -> JSONResponse:
    raw = automations.get_raw_automation_yaml(automation_id, settings.CONFIG_DIR)
    if not raw:
        raise HTTPException(status_code=404, detail="Automation not found")
    return JSONResponse({"success": True, "yaml": raw})


@app.post("/api/automation")
async def api_create_automation(payload: dict[str, Any] = Body(...)) -> JSONResponse:
    try:
        created = automations.create_automation(_automation_body(payload), settings.CONFIG_DIR)
    except EditorError as exc:
        raise _editor_error(exc) from exc
    return JSONResponse({"success": True, "automation": tagged_to_json(created)})


@app.put("/api/automation/{automation_id}")
async def api_update_automation(automation_id: str, payload: dict[str, Any] = Body(...)) -> JSONResponse:
    try:
        automations.update_automation(automation_id, _automation_body(payload), settings.CONFIG_DIR)
    except EditorError as exc:
        raise _editor_error(exc) from exc
    return JSONResponse({"success": True})


@app.delete("/api/automation/{automation_id}")
async def api_delete_automation(automation_id: str) -> JSONResponse:
    try:
        automations.delete_automation(automation_id, settings.CONFIG_DIR)
    except EditorError as exc:
        raise _editor_error(exc) from exc
    return JSONResponse({"success": True})


@app.get("/api/scripts")
async def api_scripts() -> JSONResponse:
    records = scripts.extract_scripts(settings.CONFIG_DIR)
    return JSONResponse({"success": True, "scripts": [record.as_dict() for record in records]})


@app.get("/api/script/{script_id}")
async def api_script(script_id: str) -> JSONResponse:
    record = scripts.get_script(script_id, settings.CONFIG_DIR)
    if record is None:
        raise HTTPException(status_code=404, detail="Script not found")
    return JSONResponse(
        {"success": True, "script": record.as_dict(), "yaml": scripts.script_to_yaml(record)}
    )


@app.get("/api/script/{script_id}/raw-yaml")
async def api_script_raw_yaml(script_id: str) -> JSONResponse:
    raw = scripts.get_raw_script_yaml(script_id, settings.CONFIG_DIR)
    if not raw:
        raise HTTPException(status_code=404, detail="Script not found")
    return JSONResponse({"success": True, "yaml": raw})


@app.post("/api/script")
async def api_create_script(payload: dict[str, Any] = Body(...)) -> JSONResponse:
    try:
        created = scripts.create_script(_script_body(payload), settings.CONFIG_DIR)
    except EditorError as exc:
        raise _editor_error(exc) from exc
    return JSONResponse({"success": True, "script": tagged_to_json(created)})


@app.put("/api/script/{script_id}")
async def api_update_script(script_id: str, payload: dict[str, Any] = Body(...)) -> JSONResponse:
    try:
        scripts.update_script(script_id, _script_body(payload), settings.CONFIG_DIR)
    except EditorError as exc:
        raise _editor_error(exc) from exc
    return JSONResponse({"success": True})


@app.delete("/api/script/{script_id}")
async def api_delete_script(script_id: str) -> JSONResponse:
    try:
        scripts.delete_script(script_id, settings.CONFIG_DIR)
    except EditorError as exc:
        raise _editor_error(exc) from exc
    return JSONResponse({"success": True})


@app.get("/api/folders")
async def api_folders() -> JSONResponse:
    return JSONResponse({"success": True, "folders": folders.get_folders(settings.CONFIG_DIR)})


@app.post("/api/folders")
async def api_save_folders(payload: Any = Body(...)) -> JSONResponse:
    folders.save_folders(payload, settings.CONFIG_DIR)
    return JSONResponse({"success": True})


@app.get("/api/traces/{domain}/{item_id}")
async def api_traces(domain: str, item_id: str) -> JSONResponse:
    try:
        runs = traces.get_traces(domain, item_id, settings.CONFIG_DIR)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse({"success": True, "traces": runs})


@app.get("/api/states")
async def api_states() -> JSONResponse:
    try:
        states = await ha_services.get_states()
    except httpx.HTTPError as exc:
        raise _ha_error(exc) from exc
    return JSONResponse({"success": True, "states": states})


@app.get("/api/entities")
async def api_entities(domain: str | None = None) -> JSONResponse:
    try:
        entities = await ha_services.list_entities(domain)
    except httpx.HTTPError as exc:
        raise _ha_error(exc) from exc
    return JSONResponse({"success": True, "entities": entities})


@app.get("/api/services")
async def api_services() -> JSONResponse:
    try:
        services = await ha_services.list_services()
    except httpx.HTTPError as exc:
        raise _ha_error(exc) from exc
    return JSONResponse({"success": True, "services": services})


@app.post("/api/parse-yaml")
async def api_parse_yaml(payload: dict[str, Any] = Body(...)) -> JSONResponse:
    content = payload.get("yaml")
    if content is None:
        raise HTTPException(status_code=400, detail="No YAML content provided")
    if not isinstance(content, str):
        raise HTTPException(status_code=400, detail="YAML content must be a string")
    try:
        config = automations.yaml_to_automation(content)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    errors = automations.validate_automation(config)
    if errors:
        raise HTTPException(status_code=400, detail=". ".join(errors))
    return JSONResponse({"success": True, "config": tagged_to_json(config)})


@app.post("/api/reload/automations")
async def api_reload_automations() -> JSONResponse:
    try:
        await ha_services.call_service("automation", "reload")
    except httpx.HTTPError as exc:
        raise _ha_error(exc) from exc
    return JSONResponse({"success": True, "message": "Automations reloaded"})


@app.post("/api/reload/scripts")
async def api_reload_scripts() -> JSONResponse:
    try:
        await ha_services.call_service("script", "reload")
    except httpx.HTTPError as exc:
        raise _ha_error(exc) from exc
    return JSONResponse({"success": True, "message": "Scripts reloaded"})


@app.post("/api/check_config")
async def api_check_config() -> JSONResponse:
    try:
        result = await ha_services.check_config()
    except httpx.HTTPError as exc:
        raise _ha_error(exc) from exc
    return JSONResponse({"success": True, **result})


@app.post("/api/run/{domain}/{item_id}")
async def api_run(domain: str, item_id: str, payload: dict[str, Any] | None = Body(default=None)) -> JSONResponse:
    data = payload or {}
    try:
        await ha_services.run_item(domain, item_id, data.get("entity_id"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except httpx.HTTPError as exc:
        raise _ha_error(exc) from exc
    return JSONResponse({"success": True})


@app.post("/api/run/{domain}/{item_id}/toggle")
async def api_toggle(domain: str, item_id: str, payload: dict[str, Any] | None = Body(default=None)) -> JSONResponse:
    data = payload or {}
    try:
        await ha_services.toggle_item(domain, item_id, bool(data.get("enabled")), data.get("entity_id"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except httpx.HTTPError as exc:
        raise _ha_error(exc) from exc
    return JSONResponse({"success": True})
