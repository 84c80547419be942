from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from worktrack.domain.identity import IdentityContext
from worktrack.domain.roles import parse_role
from worktrack.infra.auth import decode_access_token
from worktrack.infra.db import get_session
from worktrack.services.identity_service import IdentityService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/identity/login")


def get_current_claims(
    request: Request,
    token: str = Depends(oauth2_scheme),
) -> dict[str, Any]:
    try:
        claims = decode_access_token(token)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc
    request.state.claims = claims
    return claims


def get_identity_service() -> IdentityService:
    return IdentityService()


def get_identity(
    claims: Annotated[dict[str, Any], Depends(get_current_claims)],
    session: Annotated[Session, Depends(get_session)],
    service: Annotated[IdentityService, Depends(get_identity_service)],
) -> IdentityContext:
    role = parse_role(claims.get("role"))
    subject = claims.get("sub")
    if role is None or not isinstance(subject, str) or not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token claims",
        )
    return service.resolve(session, subject, role)
