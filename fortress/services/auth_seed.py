"""
Bootstrap seed helpers for the first organization administrator.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.auth import ADMIN_ROLE
from ..core.security import hash_password
from ..models.app_user import AppUser
from ..models.organization import Organization


def seed_admin_user(db: Session) -> None:
    logger = logging.getLogger("auth-seed")
    username = (os.getenv("FORTRESS_ADMIN_USERNAME") or "admin").strip()
    password = (os.getenv("FORTRESS_ADMIN_PASSWORD") or "").strip()
    org_name = (os.getenv("FORTRESS_ADMIN_ORGANIZATION") or "Default Organization").strip()

    if not username:
        logger.warning("Skipping admin seed: empty FORTRESS_ADMIN_USERNAME")
        return
    if not password:
        logger.warning("Skipping admin seed: FORTRESS_ADMIN_PASSWORD is empty")
        return

    existing = db.query(AppUser).filter(func.lower(AppUser.username) == username.lower()).first()
    if existing:
        if existing.role != ADMIN_ROLE or not existing.is_active:
            existing.role = ADMIN_ROLE
            existing.is_active = True
            db.add(existing)
            db.commit()
        return

    organization = db.query(Organization).filter(Organization.name == org_name).first()
    if organization is None:
        organization = Organization(name=org_name)
        db.add(organization)
        db.flush()
    db.add(
        AppUser(
            username=username,
            password_hash=hash_password(password),
            full_name=username.title(),
            role=ADMIN_ROLE,
            organization_id=organization.id,
            is_active=True,
        )
    )
    db.commit()
    logger.info("Seeded admin user %s for organization %s", username, organization.id)
