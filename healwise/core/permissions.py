from typing import List, Dict, Any, Optional
from fastapi import Request
from healwise.core.exceptions import AuthenticationError, AccessDeniedError
from healwise.core.security import verify_token
from healwise.domain.users.models import UserRole
import uuid


def get_current_user(request: Request) -> Dict[str, Any]:
    """Extract and validate the caller from the bearer token.

    The returned payload carries ``sub`` (the user id) and ``role``.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationError(message="Authentication required")

    token = auth_header.split(" ", 1)[1]
    payload = verify_token(token, "access")

    if not payload or not _is_valid_identity(payload):
        raise AuthenticationError(message="Invalid or expired token")

    return payload


def _is_valid_identity(payload: Dict[str, Any]) -> bool:
    try:
        uuid.UUID(str(payload.get("sub")))
        UserRole(payload.get("role"))
    except ValueError:
        return False
    return True


def caller_id(payload: Dict[str, Any]) -> uuid.UUID:
    return uuid.UUID(payload["sub"])


def caller_role(payload: Dict[str, Any]) -> UserRole:
    return UserRole(payload["role"])


def require_roles(allowed_roles: Optional[List[UserRole]] = None):
    """Dependency that authenticates the caller and optionally gates on role"""
    def role_checker(request: Request) -> Dict[str, Any]:
        user_payload = get_current_user(request)
        request.state.user = user_payload

        if allowed_roles and caller_role(user_payload) not in allowed_roles:
            raise AccessDeniedError(message="Insufficient permissions")

        return user_payload

    return role_checker
