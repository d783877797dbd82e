"""Auth service — login and self-registration on top of the identity store."""

from datetime import datetime, timezone
from typing import Dict, Any

from sqlalchemy.orm import Session

from clinic_backend.models.user import User
from clinic_backend.core.security import create_access_token
from clinic_backend.core.exceptions import AuthenticationError
from clinic_backend.db.session import transaction
from clinic_backend.services.identity_service import identity_service


def user_summary(user: User) -> Dict[str, Any]:
    person = user.party.person if user.party else None
    return {
        "id": user.id,
        "email": user.email,
        "phone_number": user.phone_number,
        "is_active": user.is_active,
        "roles": user.role_names,
        "first_name": person.first_name if person else None,
        "last_name": person.last_name if person else None,
        "national_number": person.national_number if person else None,
    }


class AuthService:
    """Handles authentication and account registration."""

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Dict[str, Any]:
        """Authenticate user and return a bearer token.

        Raises:
            AuthenticationError: If credentials are invalid.
        """
        user = identity_service.find_by_email(db, email)
        if not user or not identity_service.check_password(user, password):
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        roles = identity_service.get_roles_of(db, user.id)
        access_token = create_access_token(user.id, user.email, roles)

        with transaction(db):
            user.last_login_at = datetime.now(timezone.utc)

        return {
            "access_token": access_token,
            "token_type": "bearer",
            "user": user_summary(user),
        }

    @staticmethod
    def register(db: Session, email: str, password: str) -> User:
        """Create a bare account with no role and no profile."""
        with transaction(db):
            user = identity_service.create_account(db, email, password)
        db.refresh(user)
        return user

    @staticmethod
    def reset_password(db: Session, email: str, new_password: str) -> None:
        with transaction(db):
            identity_service.reset_password(db, email, new_password)


auth_service = AuthService()
