"""
Authentication and authorization dependencies.

Provides FastAPI dependencies for:
- Getting the current authenticated profile
- Role-based access control
- Coach-to-client relationship checks
"""
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from core.database import get_db
from core.exceptions import ForbiddenError, UnauthorizedError
from core.security import decode_access_token
from models import CoachClient, Profile

# Use auto_error=False to handle missing credentials manually and return 401 (not 403)
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Profile:
    """
    Get the current authenticated profile from the bearer JWT.

    Raises 401 if the token is missing, invalid or points at no profile.
    """
    if not credentials:
        raise UnauthorizedError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise UnauthorizedError("Invalid authentication credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token payload")

    try:
        user_id_uuid = UUID(user_id)
    except ValueError:
        raise UnauthorizedError("Invalid user ID format")

    user = db.query(Profile).filter(Profile.id == user_id_uuid).first()
    if not user:
        raise UnauthorizedError("Profile not found")

    return user


def require_role(allowed_roles: list[str]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/mark-complete")
        def mark_complete(coach: Profile = Depends(require_role(["coach", "admin"]))):
            ...
    """
    def role_checker(current_user: Profile = Depends(get_current_user)) -> Profile:
        if current_user.role not in allowed_roles:
            raise ForbiddenError(f"Access denied. Required roles: {allowed_roles}")
        return current_user

    return role_checker


def require_coach(
    current_user: Profile = Depends(require_role(["coach", "admin"]))
) -> Profile:
    """Require coach or admin role."""
    return current_user


def ensure_coaches_client(db: Session, coach: Profile, client_id: UUID) -> None:
    """
    Raise 403 unless `client_id` is linked to `coach`.

    Admins go through the same check: acting on a client always needs
    an explicit coaching relationship.
    """
    relation = (
        db.query(CoachClient.id)
        .filter(CoachClient.coach_id == coach.id, CoachClient.client_id == client_id)
        .first()
    )
    if relation is None:
        raise ForbiddenError("Client not found or does not belong to this coach")
