"""Calls to user-configured external HTTP APIs."""
from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from botruntime.config import get_settings
from botruntime.models.api_integration import ApiIntegration
from botruntime.services.config_store import find_integration

logger = logging.getLogger(__name__)

MSG_API_FAILED = "API call failed"


def build_auth(integration: ApiIntegration) -> tuple[dict[str, str], tuple[str, str] | None]:
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    creds = integration.credentials or {}
    auth_type = (integration.auth_type or "none").lower()
    if auth_type == "api_key":
        headers[creds.get("header_name") or "X-API-Key"] = str(creds.get("api_key") or "")
    elif auth_type == "bearer":
        headers["Authorization"] = f"Bearer {creds.get('token') or ''}"
    elif auth_type == "basic":
        return headers, (str(creds.get("username") or ""), str(creds.get("password") or ""))
    return headers, None


def build_url(base_url: str, path: str | None = None, query: dict | None = None) -> str:
    url = base_url or ""
    if path:
        url += path
    if query:
        url += "?" + urlencode(query, doseq=True)
    return url


def apply_mapping(data: Any, mapping: dict[str, str]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, path in mapping.items():
        value = data
        for part in str(path).split("."):
            if isinstance(value, dict):
                value = value.get(part)
            elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
                value = value[int(part)]
            else:
                value = None
                break
        result[key] = value
    return result


def execute_integration_call(
    integration: ApiIntegration,
    params: dict[str, Any],
) -> tuple[Any, str | None]:
    """Return ``(data, None)`` on a 2xx JSON response, ``(None, err)`` otherwise."""
    headers, basic = build_auth(integration)
    url = build_url(integration.endpoint_base_url, params.get("path"), params.get("query"))
    method = (params.get("method") or "GET").upper()
    body = params.get("body")
    try:
        r = httpx.request(
            method,
            url,
            headers=headers,
            auth=basic,
            json=body,
            timeout=get_settings().api_integration_timeout_seconds,
        )
    except httpx.HTTPError as e:
        logger.warning("api_integration_failed integration_id=%s err=%s", integration.id, str(e)[:200])
        return None, str(e)[:200] or "transport_error"
    if r.status_code < 200 or r.status_code >= 300:
        logger.warning("api_integration_failed integration_id=%s status=%s", integration.id, r.status_code)
        return None, f"http_{r.status_code}"
    try:
        data = r.json() if r.content else {}
    except ValueError:
        data = r.text
    mapping = (integration.mapping_config or {}).get("response_mapping")
    if isinstance(mapping, dict) and mapping:
        data = apply_mapping(data, mapping)
    return data, None


def format_result(data: Any) -> str:
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    return json.dumps(data, ensure_ascii=False, indent=2)


def run_api_call(db: Session, project_id: int, config: dict[str, Any]) -> str:
    integration = find_integration(db, project_id, config)
    if not integration:
        logger.warning("api_integration_missing project_id=%s config_keys=%s", project_id, sorted(config.keys()))
        return MSG_API_FAILED
    data, err = execute_integration_call(integration, config)
    if err:
        return MSG_API_FAILED
    return format_result(data) or MSG_API_FAILED
