from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from leavedesk.core.exceptions import AccessDeniedError
from leavedesk.database import get_db
from leavedesk.models.user import User, UserRole
from leavedesk.routers.auth_deps import get_current_user, require_admin, require_manager
from leavedesk.schemas.user import UserCreate, UserResponse, UserUpdate
from leavedesk.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("/", response_model=List[UserResponse])
def list_users(
    role: Optional[UserRole] = None,
    current_user: User = Depends(require_manager()),
    service: UserService = Depends(get_user_service),
):
    return service.list_users(role=role)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    if user_id != current_user.id and not current_user.can_approve:
        raise AccessDeniedError("You can only view your own profile")
    return service.get_user(user_id)


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreate,
    current_user: User = Depends(require_admin()),
    service: UserService = Depends(get_user_service),
):
    return service.create_user(data)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.update_user(user_id, current_user, data)


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin()),
    service: UserService = Depends(get_user_service),
):
    service.delete_user(user_id, current_user)
    return {"message": "User deleted successfully"}
