"""Seed the permission catalog and the predefined roles."""

import logging

from sqlalchemy.orm import Session

from clinic_backend.core.permissions import (
    ALL_PERMISSIONS, DEFAULT_ROLE_GRANTS, PREDEFINED_ROLES, ROLE_ADMIN,
)
from clinic_backend.models.role import Permission, Role, RolePermission

logger = logging.getLogger("clinic_backend")

ROLE_DESCRIPTIONS = {
    "admin": "Full system access",
    "doctor": "Sees and updates appointments at the clinics they work in",
    "clinic-staff": "Books and accepts appointments for their clinics",
    "patient": "Requests and confirms their own appointments",
}


def seed_permissions_and_roles(db: Session) -> None:
    """Insert missing permissions and roles, then apply grants.

    Admin is topped up with every catalog permission on each run. The other
    predefined roles get their default grants only while they hold none, so
    an operator's later edits survive a restart.
    """
    known = {p.name: p for p in db.query(Permission).all()}
    for name in ALL_PERMISSIONS:
        if name not in known:
            permission = Permission(name=name)
            db.add(permission)
            known[name] = permission

    roles = {r.name: r for r in db.query(Role).filter(Role.name.in_(PREDEFINED_ROLES)).all()}
    for name in PREDEFINED_ROLES:
        if name not in roles:
            role = Role(name=name, description=ROLE_DESCRIPTIONS.get(name))
            db.add(role)
            roles[name] = role
    db.flush()

    admin = roles[ROLE_ADMIN]
    granted = {link.permission_id for link in admin.permission_links}
    added = 0
    for permission in known.values():
        if permission.id not in granted:
            admin.permission_links.append(RolePermission(permission_id=permission.id))
            added += 1

    for role_name, grants in DEFAULT_ROLE_GRANTS.items():
        role = roles[role_name]
        if role.permission_links:
            continue
        for name in grants:
            role.permission_links.append(RolePermission(permission_id=known[name].id))

    db.commit()
    logger.info(
        "Seeded %d permissions and %d roles (%d new admin grants)",
        len(known), len(roles), added,
    )
