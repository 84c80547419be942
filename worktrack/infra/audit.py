from __future__ import annotations

import logging
from typing import Any

from sqlmodel import Session
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from worktrack.domain.models import AuditLog, now_utc
from worktrack.infra.db import engine

logger = logging.getLogger(__name__)

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
UNAUDITED_PATHS = {"/healthz", "/readyz"}
AUDIT_ACTION_STATE_KEY = "audit_action"
AUDIT_WHAT_STATE_KEY = "audit_what"


def set_audit_context(request: Request, action: str, **what: Any) -> None:
    """Names the audited action; keyword arguments land in the row's `what` section."""
    setattr(request.state, AUDIT_ACTION_STATE_KEY, action)
    setattr(request.state, AUDIT_WHAT_STATE_KEY, what)


def _outcome(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code in {401, 403, 404}:
        return "denied"
    if status_code >= 400:
        return "rejected"
    return "success"


def build_audit_row(request: Request, status_code: int) -> AuditLog:
    claims = getattr(request.state, "claims", {})
    path = request.url.path
    route = request.scope.get("route")
    route_path = getattr(route, "path", path)
    action = getattr(request.state, AUDIT_ACTION_STATE_KEY, f"{request.method}:{route_path}")
    what = getattr(request.state, AUDIT_WHAT_STATE_KEY, {})
    actor_id = claims.get("sub")
    return AuditLog(
        actor_id=actor_id,
        action=action,
        resource=route_path,
        method=request.method,
        status_code=status_code,
        detail={
            "who": {"actor_id": actor_id, "role": claims.get("role")},
            "when": {"request_ts": now_utc().isoformat()},
            "where": {
                "path": path,
                "client_ip": request.client.host if request.client is not None else None,
            },
            "what": {"action": action, **what},
            "result": {"status_code": status_code, "outcome": _outcome(status_code)},
        },
    )


class AuditMiddleware(BaseHTTPMiddleware):
    """Records one audit row per write request, after the response is produced."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        if request.url.path in UNAUDITED_PATHS or request.method not in WRITE_METHODS:
            return response
        try:
            row = build_audit_row(request, response.status_code)
            with Session(engine) as session:
                session.add(row)
                session.commit()
        except Exception:
            logger.exception("audit write failed for %s %s", request.method, request.url.path)
        return response
