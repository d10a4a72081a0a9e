"""Dependency injection for FastAPI endpoints: clients, request context and role guards"""

import logging
from typing import Any, Callable, Dict, List, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from cashloan_gateway.config import settings
from cashloan_gateway.domain.models import RequestContext, Role
from cashloan_gateway.infrastructure.clients.receipts import ReceiptClient
from cashloan_gateway.infrastructure.database.repositories import UserRepository
from cashloan_gateway.infrastructure.database.session import get_db

security = HTTPBearer(auto_error=False)

ALL_ROLES = (Role.OWNER, Role.SUPERVISOR, Role.CASHIER, Role.READONLY)

MembershipLookup = Callable[[str, str], Optional[str]]


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_receipt_client() -> ReceiptClient:
    """Provide receipt service client instance"""
    return ReceiptClient()


def token_orgs(payload: Dict[str, Any]) -> List[str]:
    """Organisations the token itself vouches for, in resolution order"""
    user_metadata = payload.get("user_metadata") or {}
    claimed = [payload.get("org_id"), user_metadata.get("default_org_id"), *(payload.get("orgs") or [])]
    return [org for org in claimed if org]


def context_from_claims(
    payload: Dict[str, Any],
    org_header: Optional[str] = None,
    membership_role: Optional[MembershipLookup] = None,
) -> RequestContext:
    """
    Build the request context from verified JWT claims.

    Organisation: x-org-id header, org_id claim, user_metadata.default_org_id,
    then the first of orgs. A header naming an organisation the token does not
    carry is only honoured when the user holds a membership there.

    Role, for an organisation carried by the token: role claim,
    user_metadata.roles[org], membership role, first of app_metadata.roles,
    else readonly. For an organisation reached through membership only, the
    membership role.
    """
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    claimed = token_orgs(payload)
    org_id = org_header or (claimed[0] if claimed else None)
    if not org_id:
        raise HTTPException(status_code=401, detail="Missing org context")

    def lookup() -> Optional[str]:
        return membership_role(user_id, org_id) if membership_role else None

    if org_id in claimed:
        user_metadata = payload.get("user_metadata") or {}
        app_roles = (payload.get("app_metadata") or {}).get("roles") or []
        role = (
            payload.get("role")
            or (user_metadata.get("roles") or {}).get(org_id)
            or lookup()
            or (app_roles[0] if app_roles else None)
            or Role.READONLY.value
        )
    else:
        role = lookup()
        if role is None:
            raise HTTPException(status_code=403, detail="Organisation not permitted")

    return RequestContext(org_id=org_id, user_id=user_id, role=role, email=payload.get("email"))


def get_request_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_org_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> RequestContext:
    """Verify the bearer token and resolve who is calling for which organisation"""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options={"verify_aud": settings.jwt_audience is not None},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    ctx = context_from_claims(payload, x_org_id, UserRepository(db).get_membership_role)
    logging.debug(
        "Authenticated request",
        extra={"user_id": ctx.user_id, "org_id": ctx.org_id, "role": ctx.role},
    )
    return ctx


def require_roles(*roles: Role) -> Callable[..., RequestContext]:
    """Dependency factory that admits only the listed roles"""
    allowed = {role.value for role in roles}

    def check(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if ctx.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient role")
        return ctx

    return check
