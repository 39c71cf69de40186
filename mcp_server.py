"""MCP server for the office dashboard.

Exposes the dashboard REST endpoints as MCP tools so AI clients can read the
agent board and task log, and push status changes, over a standard MCP
interface.
"""

from __future__ import annotations

import json
import os
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from mcp.server.fastmcp import FastMCP

BASE_URL = os.environ.get("DASHBOARD_URL", "http://127.0.0.1:3000").rstrip("/")
REQUEST_TIMEOUT_SEC = float(os.environ.get("OFFICE_HTTP_TIMEOUT_SEC", "10"))

mcp = FastMCP("office-dashboard")


def _http_request(path: str, payload: Any = None) -> dict[str, Any]:
    url = f"{BASE_URL}{path}"
    if payload is None:
        request = Request(url=url, method="GET")
    else:
        request = Request(
            url=url,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={"Content-Type": "application/json"},
        )

    try:
        with urlopen(request, timeout=REQUEST_TIMEOUT_SEC) as response:
            charset = response.headers.get_content_charset() or "utf-8"
            body = response.read().decode(charset)
            return {
                "ok": True,
                "base_url": BASE_URL,
                "status_code": int(response.status),
                "data": json.loads(body) if body else {},
            }
    except HTTPError as exc:
        details = ""
        try:
            details = exc.read().decode("utf-8", errors="replace")
        except Exception:
            details = ""
        return {
            "ok": False,
            "base_url": BASE_URL,
            "status_code": int(exc.code),
            "error": f"HTTP error {exc.code}",
            "details": details,
        }
    except URLError as exc:
        return {
            "ok": False,
            "base_url": BASE_URL,
            "error": "Connection error",
            "details": str(exc.reason),
        }
    except json.JSONDecodeError as exc:
        return {
            "ok": False,
            "base_url": BASE_URL,
            "error": "Invalid JSON response",
            "details": str(exc),
        }


@mcp.tool()
def dashboard_agents() -> dict[str, Any]:
    """Return every agent's status, task count, productivity and role from /api/agents."""
    return _http_request("/api/agents")


@mcp.tool()
def dashboard_capabilities() -> dict[str, Any]:
    """Return runtime switches and live counters from /capabilities."""
    return _http_request("/capabilities")


@mcp.tool()
def task_history(agent_name: str = "") -> dict[str, Any]:
    """Return the task history, optionally filtered to one agent."""
    payload = _http_request("/api/task-history")
    if payload.get("ok") and agent_name and isinstance(payload.get("data"), list):
        payload["data"] = [t for t in payload["data"] if t.get("agent") == agent_name]
    return payload


@mcp.tool()
def task_queue() -> dict[str, Any]:
    """Return the task queue from /api/task-queue."""
    return _http_request("/api/task-queue")


@mcp.tool()
def set_agent_status(agent_name: str, status: str) -> dict[str, Any]:
    """Set one agent's status (online, offline, idle or busy)."""
    return _http_request("/api/agent-status", {"agent": agent_name, "status": status})


@mcp.tool()
def push_state_update(updates: dict[str, dict[str, Any]]) -> dict[str, Any]:
    """Push a bulk update of agent -> {status, taskCount, productivity} fields."""
    return _http_request("/api/update-state", updates)


if __name__ == "__main__":
    mcp.run()
