"""
Authentication endpoints for the Fortress backend.

Registering with ``organization_name`` creates a new tenant and makes the
caller its administrator. Further users are added to an existing tenant
by one of its administrators.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from ...core.auth import (
    ADMIN_ROLE,
    MANAGER_ROLE,
    VIEWER_ROLE,
    UserContext,
    get_current_user,
    get_optional_user,
)
from ...core.db import get_db
from ...core.security import create_access_token, hash_password, verify_password
from ...models.app_user import AppUser
from ...models.organization import Organization


router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

logger = logging.getLogger("auth")

TENANT_ROLES = {ADMIN_ROLE, MANAGER_ROLE, VIEWER_ROLE}


class LoginIn(BaseModel):
    username: str
    password: str


class RegisterIn(BaseModel):
    username: str = Field(..., min_length=3, max_length=128)
    password: str = Field(..., min_length=6, max_length=256)
    full_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    organization_name: Optional[str] = Field(default=None, max_length=255)
    role: Optional[str] = Field(default=None, max_length=64)


def _user_profile(user: AppUser) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "name": user.full_name or user.username.title(),
        "email": user.email,
        "role": user.role,
        "organization_id": user.organization_id,
    }


def _build_login_response(user: AppUser) -> dict:
    token = create_access_token(
        sub=user.username,
        role=(user.role or VIEWER_ROLE).upper(),
        user_id=user.id,
        organization_id=user.organization_id,
    )
    return {"access_token": token, "token_type": "bearer", "user": _user_profile(user)}


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)) -> dict:
    username = payload.username.strip()
    if not username or not payload.password:
        raise HTTPException(status_code=400, detail="username and password are required")
    user = db.query(AppUser).filter(func.lower(AppUser.username) == username.lower()).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    logger.info("User logged in username=%s org=%s", user.username, user.organization_id)
    return _build_login_response(user)


@router.post("/register", status_code=201)
def register(
    payload: RegisterIn,
    db: Session = Depends(get_db),
    requester: Optional[UserContext] = Depends(get_optional_user),
) -> dict:
    username = payload.username.strip()
    if not username:
        raise HTTPException(status_code=400, detail="username is required")
    if " " in username:
        raise HTTPException(status_code=400, detail="username cannot contain spaces")

    existing = db.query(AppUser).filter(func.lower(AppUser.username) == username.lower()).first()
    if existing:
        raise HTTPException(status_code=409, detail="Username already exists")

    organization_name = (payload.organization_name or "").strip()
    if organization_name:
        organization = Organization(name=organization_name)
        db.add(organization)
        db.flush()
        organization_id = organization.id
        role = ADMIN_ROLE
    else:
        if not requester or not requester.organization_id or requester.role.upper() != ADMIN_ROLE:
            raise HTTPException(
                status_code=403,
                detail="Only an organization admin can add users; pass organization_name to create one",
            )
        organization_id = requester.organization_id
        role = (payload.role or VIEWER_ROLE).strip().upper()
        if role not in TENANT_ROLES:
            raise HTTPException(status_code=400, detail=f"Unknown role {role}")
        # First account of a tenant is always its admin.
        members = db.query(func.count(AppUser.id)).filter(AppUser.organization_id == organization_id).scalar() or 0
        if members == 0:
            role = ADMIN_ROLE

    user = AppUser(
        username=username,
        password_hash=hash_password(payload.password),
        full_name=payload.full_name,
        email=payload.email,
        role=role,
        organization_id=organization_id,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User registered username=%s org=%s role=%s", user.username, organization_id, role)
    return _build_login_response(user)


@router.get("/me")
def me(user: UserContext = Depends(get_current_user), db: Session = Depends(get_db)) -> dict:
    if user.user_id:
        profile = db.get(AppUser, user.user_id)
        if profile is not None:
            return _user_profile(profile)
    return {
        "id": user.user_id,
        "username": user.username,
        "name": user.username,
        "email": None,
        "role": user.role,
        "organization_id": user.organization_id,
    }
