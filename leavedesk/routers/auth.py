import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from leavedesk.core.config import settings
from leavedesk.core.limiter import limiter
from leavedesk.database import get_db
from leavedesk.models.user import User
from leavedesk.routers.auth_deps import get_current_user
from leavedesk.schemas.auth import LoginRequest, RefreshRequest, Token
from leavedesk.schemas.user import UserResponse
from leavedesk.services import auth as auth_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


def _token_claims(user: User) -> dict:
    return {
        "sub": user.email,
        "role": user.role.value,
        "user_id": user.id,
    }


def _set_auth_cookies(response: Response, access_token: str, refresh_token: Optional[str] = None) -> None:
    secure = settings.environment == "production"
    response.set_cookie(
        settings.access_cookie_name,
        access_token,
        httponly=True,
        secure=secure,
        samesite="lax",
        max_age=auth_service.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    if refresh_token:
        response.set_cookie(
            settings.refresh_cookie_name,
            refresh_token,
            httponly=True,
            secure=secure,
            samesite="lax",
            max_age=auth_service.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        )


@router.post("/login", response_model=Token)
@limiter.limit(settings.login_rate_limit)
def login(request: Request, response: Response, login_data: LoginRequest, db: Session = Depends(get_db)):
    # JSON body instead of form-data for frontend compatibility
    user = db.query(User).filter(User.email == login_data.email.lower()).first()
    if not user or not auth_service.verify_password(login_data.password, user.hashed_password):
        logger.warning("Failed login attempt", extra={"email": login_data.email})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")

    access_token = auth_service.create_access_token(data=_token_claims(user))
    refresh_token = auth_service.create_refresh_token(data={"sub": user.email, "user_id": user.id})
    _set_auth_cookies(response, access_token, refresh_token)

    logger.info(f"User {user.id} logged in", extra={"user_id": user.id})
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": user,
    }


@router.post("/refresh", response_model=Token)
def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = None,
    db: Session = Depends(get_db),
):
    token = request.cookies.get(settings.refresh_cookie_name) or (body.refresh_token if body else None)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token missing")

    payload = auth_service.decode_access_token(token)
    if payload is None or payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    user = db.query(User).filter(User.id == payload.get("user_id")).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User inactive or not found")

    access_token = auth_service.create_access_token(data=_token_claims(user))
    _set_auth_cookies(response, access_token)
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": user,
    }


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.access_cookie_name)
    response.delete_cookie(settings.refresh_cookie_name)
    return {"message": "Successfully logged out"}


@router.get("/verify")
def verify(current_user: User = Depends(get_current_user)):
    return {"valid": True, "user": UserResponse.model_validate(current_user)}


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user
