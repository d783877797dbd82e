"""Permission catalog CRUD, the role-permission graph and the permission resolver.

Permissions are only ever granted to roles. A user's effective permissions
are the union over the roles the identity store says the user holds, read
fresh from the database on every check unless the Redis cache is enabled.
Cached entries are dropped, and the cache generation bumped, after any
commit that touched the graph or a membership.
"""

import logging
from typing import Dict, Any, Iterable, List, Set

from sqlalchemy import event
from sqlalchemy.orm import Session

from clinic_backend.core.config import settings
from clinic_backend.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from clinic_backend.core.permissions import is_valid_permission_name
from clinic_backend.db.session import transaction
from clinic_backend.models.role import Role, Permission, RolePermission
from clinic_backend.models.user import User, UserRole
from clinic_backend.services.cache_service import cache_service
from clinic_backend.services.query_filters import paginate

logger = logging.getLogger("clinic_backend")

CACHE_KEY = "permissions:user:{user_id}"
CACHE_PATTERN = "permissions:user:*"
# Bumped on every invalidation. An entry filled under an older generation
# is never served.
GENERATION_KEY = "permissions:generation"
_PENDING = "pending_permission_invalidations"
_ALL_USERS = "*"


def _current_generation() -> str:
    return cache_service.get(GENERATION_KEY) or "0"


@event.listens_for(Session, "after_commit")
def _drop_invalidated_permissions(session: Session) -> None:
    pending = session.info.pop(_PENDING, None)
    if not pending or not settings.PERMISSION_CACHE_ENABLED:
        return
    cache_service.incr(GENERATION_KEY)
    if _ALL_USERS in pending:
        cache_service.invalidate_pattern(CACHE_PATTERN)
        return
    for user_id in pending:
        cache_service.delete(CACHE_KEY.format(user_id=user_id))


@event.listens_for(Session, "after_rollback")
def _discard_invalidations(session: Session) -> None:
    session.info.pop(_PENDING, None)


class PermissionService:
    """Manages permissions, roles and their assignment; resolves user permissions."""

    # ---- Cache invalidation ----

    @staticmethod
    def invalidate_user(db: Session, user_id: int) -> None:
        """Drop the user's cached permissions once the session commits."""
        db.info.setdefault(_PENDING, set()).add(user_id)

    @staticmethod
    def invalidate_all(db: Session) -> None:
        db.info.setdefault(_PENDING, set()).add(_ALL_USERS)

    # ---- Permission catalog ----

    @staticmethod
    def list_permissions(db: Session, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        query = db.query(Permission).order_by(Permission.name)
        return paginate(query, page, page_size)

    @staticmethod
    def get_permission(db: Session, permission_id: int) -> Permission:
        permission = db.get(Permission, permission_id)
        if not permission:
            raise ResourceNotFoundError(f"Permission {permission_id} not found")
        return permission

    @staticmethod
    def create_permission(db: Session, name: str) -> Permission:
        """Add a permission to the catalog.

        Raises:
            ValidationError: If the name is not snake_case.
            ResourceConflictError: If the name is taken.
        """
        if not is_valid_permission_name(name):
            raise ValidationError(f"Permission name '{name}' must be snake_case, e.g. view_patients")
        if db.query(Permission).filter(Permission.name == name).first():
            raise ResourceConflictError(f"Permission with name '{name}' already exists")

        with transaction(db):
            permission = Permission(name=name)
            db.add(permission)
        db.refresh(permission)
        logger.info("Permission %s created", name)
        return permission

    @staticmethod
    def update_permission(db: Session, permission_id: int, name: str) -> Permission:
        permission = PermissionService.get_permission(db, permission_id)
        if not is_valid_permission_name(name):
            raise ValidationError(f"Permission name '{name}' must be snake_case, e.g. view_patients")
        clash = (
            db.query(Permission)
            .filter(Permission.name == name, Permission.id != permission_id)
            .first()
        )
        if clash:
            raise ResourceConflictError(f"Permission with name '{name}' already exists")

        with transaction(db):
            permission.name = name
            PermissionService.invalidate_all(db)
        db.refresh(permission)
        return permission

    @staticmethod
    def delete_permission(db: Session, permission_id: int) -> None:
        """Remove a permission no role references.

        Raises:
            ResourceConflictError: If any role still holds the permission.
        """
        permission = PermissionService.get_permission(db, permission_id)
        in_use = (
            db.query(RolePermission)
            .filter(RolePermission.permission_id == permission_id)
            .first()
        )
        if in_use:
            raise ResourceConflictError("Cannot delete permission that is assigned to roles")

        name = permission.name
        with transaction(db):
            db.delete(permission)
        logger.info("Permission %s deleted", name)

    # ---- Roles ----

    @staticmethod
    def list_roles(db: Session, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        query = db.query(Role).order_by(Role.name)
        return paginate(query, page, page_size)

    @staticmethod
    def get_role(db: Session, role_id: int) -> Role:
        role = db.get(Role, role_id)
        if not role:
            raise ResourceNotFoundError(f"Role {role_id} not found")
        return role

    @staticmethod
    def create_role(
        db: Session,
        name: str,
        permission_ids: Iterable[int] = (),
        description: str = None,
    ) -> Role:
        if db.query(Role).filter(Role.name == name).first():
            raise ResourceConflictError(f"Role with name '{name}' already exists")

        with transaction(db):
            role = Role(name=name, description=description)
            db.add(role)
            db.flush()
            PermissionService._replace_permissions(db, role, permission_ids)
        db.refresh(role)
        logger.info("Role %s created", name)
        return role

    @staticmethod
    def update_role(
        db: Session,
        role_id: int,
        name: str,
        permission_ids: Iterable[int],
        description: str = None,
    ) -> Role:
        """Rename a role and replace its permission set."""
        role = PermissionService.get_role(db, role_id)
        clash = db.query(Role).filter(Role.name == name, Role.id != role_id).first()
        if clash:
            raise ResourceConflictError(f"Role with name '{name}' already exists")

        with transaction(db):
            role.name = name
            if description is not None:
                role.description = description
            PermissionService._replace_permissions(db, role, permission_ids)
        db.refresh(role)
        return role

    @staticmethod
    def delete_role(db: Session, role_id: int) -> None:
        """Delete a role nobody holds.

        Raises:
            ResourceConflictError: If any user is a member of the role.
        """
        role = PermissionService.get_role(db, role_id)
        held = db.query(UserRole).filter(UserRole.role_id == role_id).first()
        if held:
            raise ResourceConflictError("Cannot delete role that is assigned to users")

        name = role.name
        with transaction(db):
            db.delete(role)
            PermissionService.invalidate_all(db)
        logger.info("Role %s deleted", name)

    # ---- Role-permission graph ----

    @staticmethod
    def _replace_permissions(db: Session, role: Role, permission_ids: Iterable[int]) -> None:
        # Old rows are flushed away first so re-adding a pair never trips
        # the (role_id, permission_id) unique constraint.
        role.permission_links.clear()
        db.flush()
        for permission_id in dict.fromkeys(permission_ids):
            permission = db.get(Permission, permission_id)
            if permission is None:
                logger.warning("Skipping unknown permission %s for role %s", permission_id, role.name)
                continue
            role.permission_links.append(RolePermission(permission=permission))
        db.flush()
        PermissionService.invalidate_all(db)

    @staticmethod
    def assign_permissions(db: Session, role_id: int, permission_ids: Iterable[int]) -> Role:
        """Replace the role's permission set with ``permission_ids``.

        Full replace, so assigning {A, B} then {B, C} leaves exactly {B, C}.
        Unknown permission ids are skipped.
        """
        role = PermissionService.get_role(db, role_id)
        with transaction(db):
            PermissionService._replace_permissions(db, role, permission_ids)
        db.refresh(role)
        logger.info(
            "Role %s now holds permissions %s",
            role.name, [p.name for p in role.permissions],
        )
        return role

    @staticmethod
    def remove_permission_from_role(db: Session, role_id: int, permission_id: int) -> None:
        role = PermissionService.get_role(db, role_id)
        link = next((l for l in role.permission_links if l.permission_id == permission_id), None)
        if link is None:
            raise ResourceNotFoundError(
                f"Permission {permission_id} is not assigned to role {role.name}"
            )
        with transaction(db):
            role.permission_links.remove(link)
            PermissionService.invalidate_all(db)

    @staticmethod
    def get_role_permissions(db: Session, role_id: int) -> List[Permission]:
        return PermissionService.get_role(db, role_id).permissions

    # ---- Resolver ----

    @staticmethod
    def get_effective_permissions(db: Session, user_id: int) -> Set[str]:
        """Union of the permissions of every role the user holds.

        An unknown or deactivated user gets an empty set.
        """
        user = db.get(User, user_id)
        if user is None or not user.is_active:
            return set()

        cache_key = CACHE_KEY.format(user_id=user_id)
        generation = None
        if settings.PERMISSION_CACHE_ENABLED:
            # Read before the query: a commit landing after this point
            # bumps the counter and the entry written below is never served.
            generation = _current_generation()
            cached = cache_service.get_json(cache_key)
            if isinstance(cached, dict) and cached.get("generation") == generation:
                return set(cached["permissions"])

        rows = (
            db.query(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(UserRole, UserRole.role_id == RolePermission.role_id)
            .filter(UserRole.user_id == user_id)
            .distinct()
            .all()
        )
        permissions = {name for (name,) in rows}

        if settings.PERMISSION_CACHE_ENABLED:
            cache_service.set_json(
                cache_key,
                {"generation": generation, "permissions": sorted(permissions)},
                settings.PERMISSION_CACHE_TTL_SECONDS,
            )
        return permissions

    @staticmethod
    def has_permission(db: Session, user_id: int, permission_name: str) -> bool:
        return permission_name in PermissionService.get_effective_permissions(db, user_id)

    @staticmethod
    def get_user_role_info(db: Session, user_id: int) -> Dict[str, Any]:
        from clinic_backend.services.identity_service import identity_service

        user = identity_service.get_user(db, user_id)
        return {
            "user_id": user.id,
            "email": user.email,
            "roles": identity_service.get_roles_of(db, user_id),
            "permissions": sorted(PermissionService.get_effective_permissions(db, user_id)),
        }


permission_service = PermissionService()
