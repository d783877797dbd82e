"""Seed the administrator login from env vars."""

import logging

from sqlalchemy.orm import Session

from clinic_backend.core.config import settings
from clinic_backend.core.permissions import ROLE_ADMIN
from clinic_backend.db.session import transaction
from clinic_backend.services.identity_service import identity_service

logger = logging.getLogger("clinic_backend")


def seed_admin(db: Session) -> None:
    """Create the admin account if not already present and put it in the admin role."""
    existing = identity_service.find_by_email(db, settings.ADMIN_EMAIL)
    with transaction(db):
        if existing is None:
            existing = identity_service.create_account(
                db, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD,
            )
            logger.info("Created admin account %s", settings.ADMIN_EMAIL)
        identity_service.add_to_role(db, existing.id, ROLE_ADMIN)
