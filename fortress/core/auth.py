"""
Bearer-token authentication and role checks.

Tenant users carry their organization in the token; the database change
hook authenticates with the shared service token and acts on behalf of
whichever tenant owns the incoming record.
"""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, Depends

from .config import auth_disabled
from .security import TokenError, decode_access_token

ADMIN_ROLE = "ADMIN"
MANAGER_ROLE = "INVENTORY_MANAGER"
VIEWER_ROLE = "VIEWER"
SERVICE_ROLE = "SERVICE"


@dataclass
class UserContext:
    role: str
    user_id: Optional[str] = None
    username: Optional[str] = None
    organization_id: Optional[str] = None
    unscoped: bool = False

    @property
    def is_service(self) -> bool:
        return self.role == SERVICE_ROLE

    def can_access(self, organization_id: Optional[str]) -> bool:
        if self.is_service or self.unscoped:
            return True
        return bool(organization_id) and self.organization_id == organization_id


def _service_token() -> str:
    return (os.getenv("FORTRESS_SERVICE_TOKEN") or "").strip()


def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    if not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


def get_current_user(
    authorization: Optional[str] = Header(None),
    x_organization_id: Optional[str] = Header(None, alias="X-Organization-Id"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
) -> UserContext:
    if auth_disabled():
        return UserContext(
            role=ADMIN_ROLE,
            user_id=None,
            username=x_user_name,
            organization_id=x_organization_id,
            unscoped=not x_organization_id,
        )
    token = _extract_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized: Authorization header missing.")
    try:
        claims = decode_access_token(token)
    except TokenError:
        expected = _service_token()
        if not expected or not secrets.compare_digest(token, expected):
            raise HTTPException(status_code=401, detail="Unauthorized: Invalid or mismatched user token.")
        return UserContext(role=SERVICE_ROLE, user_id=None, username="service")
    role = str(claims.get("role") or "").strip().upper()
    username = str(claims.get("sub") or "").strip() or None
    user_id = str(claims.get("user_id") or "").strip() or None
    organization_id = str(claims.get("org") or "").strip() or None
    if not role or not username or not user_id:
        raise HTTPException(status_code=401, detail="Invalid token claims")
    return UserContext(
        role=role,
        user_id=user_id,
        username=username,
        organization_id=organization_id,
    )


def require_tenant_user(user: UserContext = Depends(get_current_user)) -> UserContext:
    if not user.organization_id:
        raise HTTPException(status_code=403, detail="User is not assigned to an organization")
    return user


def require_roles(*roles: str):
    def _dep(user: UserContext = Depends(require_tenant_user)):
        allowed = {r.strip().upper() for r in roles if r and r.strip()}
        if allowed and user.role.upper() not in allowed:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return _dep


def get_optional_user(
    authorization: Optional[str] = Header(None),
    x_organization_id: Optional[str] = Header(None, alias="X-Organization-Id"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
) -> Optional[UserContext]:
    if not authorization and not auth_disabled():
        return None
    return get_current_user(authorization, x_organization_id, x_user_name)
