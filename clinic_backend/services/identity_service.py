"""Identity store — accounts, passwords and role memberships.

Account writes only flush; the caller owns the transaction so an account
and the profile it belongs to commit or roll back together.
"""

import logging
from typing import Optional, List

from sqlalchemy.orm import Session

from clinic_backend.models.user import User, UserRole
from clinic_backend.models.role import Role
from clinic_backend.core.security import hash_password, verify_password
from clinic_backend.core.exceptions import ResourceConflictError, ResourceNotFoundError

logger = logging.getLogger("clinic_backend")

UPDATABLE_ATTRIBUTES = ("email", "phone_number", "is_active")


class IdentityService:
    """Handles login accounts and their role memberships."""

    @staticmethod
    def create_account(
        db: Session,
        email: str,
        password: str,
        phone_number: Optional[str] = None,
        party_id: Optional[int] = None,
    ) -> User:
        """Create a login account.

        Raises:
            ResourceConflictError: If the email is already registered.
        """
        if IdentityService.find_by_email(db, email):
            raise ResourceConflictError(f"User with email {email} already exists")

        user = User(
            email=email,
            hashed_password=hash_password(password),
            phone_number=phone_number,
            party_id=party_id,
            is_active=True,
        )
        db.add(user)
        db.flush()
        return user

    @staticmethod
    def find_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.get(User, user_id)

    @staticmethod
    def find_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        user = db.get(User, user_id)
        if not user:
            raise ResourceNotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def check_password(user: User, password: str) -> bool:
        return verify_password(password, user.hashed_password)

    @staticmethod
    def get_roles_of(db: Session, user_id: int) -> List[str]:
        """Role names held by the user; empty for an unknown user."""
        rows = (
            db.query(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .filter(UserRole.user_id == user_id)
            .order_by(Role.name)
            .all()
        )
        return [name for (name,) in rows]

    @staticmethod
    def add_to_role(db: Session, user_id: int, role_name: str) -> None:
        """Add the user to a role. Adding an existing membership is a no-op."""
        from clinic_backend.services.permission_service import permission_service

        user = IdentityService.get_user(db, user_id)
        role = db.query(Role).filter(Role.name == role_name).first()
        if not role:
            raise ResourceNotFoundError(f"Role '{role_name}' not found")

        if any(link.role_id == role.id for link in user.role_links):
            return
        user.role_links.append(UserRole(role_id=role.id, role=role))
        db.flush()
        permission_service.invalidate_user(db, user_id)
        logger.info("User %s added to role %s", user_id, role_name)

    @staticmethod
    def remove_from_role(db: Session, user_id: int, role_name: str) -> None:
        from clinic_backend.services.permission_service import permission_service

        user = IdentityService.get_user(db, user_id)
        link = next((l for l in user.role_links if l.role.name == role_name), None)
        if link is None:
            raise ResourceNotFoundError(f"User {user_id} is not in role '{role_name}'")
        user.role_links.remove(link)
        db.flush()
        permission_service.invalidate_user(db, user_id)
        logger.info("User %s removed from role %s", user_id, role_name)

    @staticmethod
    def update_attributes(db: Session, user_id: int, **attrs) -> User:
        """Update email, phone number or active flag."""
        from clinic_backend.services.permission_service import permission_service

        user = IdentityService.get_user(db, user_id)
        new_email = attrs.get("email")
        if new_email and new_email != user.email and IdentityService.find_by_email(db, new_email):
            raise ResourceConflictError(f"User with email {new_email} already exists")
        for key in UPDATABLE_ATTRIBUTES:
            if attrs.get(key) is not None:
                setattr(user, key, attrs[key])
        db.flush()
        if "is_active" in attrs:
            permission_service.invalidate_user(db, user_id)
        return user

    @staticmethod
    def reset_password(db: Session, email: str, new_password: str) -> None:
        user = IdentityService.find_by_email(db, email)
        if not user:
            raise ResourceNotFoundError("User not found")
        user.hashed_password = hash_password(new_password)
        db.flush()


identity_service = IdentityService()
