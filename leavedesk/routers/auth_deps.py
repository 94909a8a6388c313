"""
RBAC Dependencies.
Resolves the current user from the access token and enforces roles on endpoints.
"""
import logging
from typing import Callable, List, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from leavedesk.core.config import settings
from leavedesk.database import get_db
from leavedesk.models.user import User, UserRole
from leavedesk.schemas.auth import TokenData
from leavedesk.services import auth as auth_service

logger = logging.getLogger(__name__)

# auto_error=False so a missing header falls through to the cookie check
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    bearer_token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Extracts and validates the current user from the access token.
    The ``accessToken`` cookie is checked first, then the Authorization header.
    """
    token = request.cookies.get(settings.access_cookie_name) or bearer_token
    if not token:
        raise _unauthorized("Not authenticated")

    payload = auth_service.decode_access_token(token)
    if payload is None:
        logger.warning("Authentication failed: Invalid token")
        raise _unauthorized("Could not validate credentials")

    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Authentication failed: Token expired")
        raise _unauthorized("TOKEN_EXPIRED")

    if payload.get("type") != "access":
        logger.warning("Authentication failed: Invalid token type")
        raise _unauthorized("Invalid token type")

    token_data = TokenData(email=payload.get("sub"), role=payload.get("role"), user_id=payload.get("user_id"))
    if token_data.user_id is None:
        logger.warning("Authentication failed: Missing user id in token")
        raise _unauthorized("Missing subject in token")

    user = db.query(User).filter(User.id == token_data.user_id).first()
    if user is None:
        logger.warning(f"Authentication failed: User {token_data.user_id} not found in database")
        raise _unauthorized("User not found")
    if not user.is_active:
        logger.warning(f"Authentication failed: User {user.email} is inactive")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")
    return user


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.put("/{leave_id}/approve")
        def approve(user: User = Depends(require_role([UserRole.ADMIN, UserRole.MANAGER]))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_user
    return role_checker


def require_manager():
    """Admins and managers: approvals, rejections, deletions and full listings."""
    return require_role([UserRole.ADMIN, UserRole.MANAGER])


def require_admin():
    return require_role([UserRole.ADMIN])
