from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from leavedesk.core.config import settings
from leavedesk.database import get_db
from leavedesk.models.leave import LeaveStatus
from leavedesk.models.user import User, LeaveType
from leavedesk.routers.auth_deps import get_current_user, require_admin, require_manager
from leavedesk.schemas.file import FileResponse
from leavedesk.schemas.leave import (
    LeaveActionResponse,
    LeaveCreate,
    LeaveRejectRequest,
    LeaveResponse,
    LeaveUpdate,
)
from leavedesk.services.attachments import AttachmentManager, IncomingFile
from leavedesk.services.leave_service import LeaveService, describe_approval
from leavedesk.services.storage import LocalFileStorage, get_storage

router = APIRouter(
    prefix="/leaves",
    tags=["leaves"]
)


def get_leave_service(
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
) -> LeaveService:
    return LeaveService(db, storage)


def get_attachment_manager(
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
) -> AttachmentManager:
    return AttachmentManager(db, storage)


# --- Attachments ---
# Static paths are registered before /{leave_id} so they are not captured by it.

@router.post("/upload", response_model=List[FileResponse], status_code=status.HTTP_201_CREATED)
def upload_files(
    files: List[UploadFile] = File(...),
    current_user: User = Depends(get_current_user),
    manager: AttachmentManager = Depends(get_attachment_manager),
):
    read_limit = settings.storage.max_upload_bytes + 1
    incoming = [
        IncomingFile(
            filename=f.filename or "upload",
            content_type=f.content_type or "application/octet-stream",
            # One byte past the limit is enough for the size check to reject it
            data=f.file.read(read_limit),
        )
        for f in files
    ]
    return manager.upload(incoming, uploader=current_user)


@router.delete("/file/{file_id}")
def delete_file(
    file_id: int,
    current_user: User = Depends(get_current_user),
    manager: AttachmentManager = Depends(get_attachment_manager),
):
    manager.remove_file(file_id, current_user)
    return {"message": "File deleted successfully"}


@router.get("/temporary-files", response_model=List[FileResponse])
def list_temporary_files(
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    manager: AttachmentManager = Depends(get_attachment_manager),
):
    return manager.list_unattached(current_user, limit=limit)


@router.post("/cleanup-orphaned-files")
def cleanup_orphaned_files(
    older_than_minutes: int = Query(settings.orphan_grace_minutes, ge=0),
    current_user: User = Depends(require_admin()),
    manager: AttachmentManager = Depends(get_attachment_manager),
):
    deleted = manager.delete_orphaned(older_than=timedelta(minutes=older_than_minutes))
    return {"message": f"Cleaned up {deleted} orphaned file(s)", "deleted_count": deleted}


# --- Leaves ---

@router.post("/", response_model=LeaveResponse, status_code=status.HTTP_201_CREATED)
def create_leave(
    data: LeaveCreate,
    current_user: User = Depends(get_current_user),
    service: LeaveService = Depends(get_leave_service),
):
    return service.create_leave(current_user, data)


@router.get("/", response_model=List[LeaveResponse])
def list_leaves(
    status: Optional[LeaveStatus] = None,
    user_id: Optional[int] = None,
    leave_type: Optional[LeaveType] = None,
    current_user: User = Depends(require_manager()),
    service: LeaveService = Depends(get_leave_service),
):
    return service.list_leaves(status=status, user_id=user_id, leave_type=leave_type)


@router.get("/my", response_model=List[LeaveResponse])
def list_my_leaves(
    status: Optional[LeaveStatus] = None,
    current_user: User = Depends(get_current_user),
    service: LeaveService = Depends(get_leave_service),
):
    return service.list_user_leaves(current_user.id, status=status)


@router.get("/{leave_id}", response_model=LeaveResponse)
def get_leave(
    leave_id: int,
    current_user: User = Depends(get_current_user),
    service: LeaveService = Depends(get_leave_service),
):
    return service.get_leave(leave_id, current_user)


@router.put("/{leave_id}", response_model=LeaveResponse)
def update_leave(
    leave_id: int,
    data: LeaveUpdate,
    current_user: User = Depends(get_current_user),
    service: LeaveService = Depends(get_leave_service),
):
    return service.update_leave(leave_id, current_user, data)


@router.put("/{leave_id}/approve", response_model=LeaveActionResponse)
def approve_leave(
    leave_id: int,
    current_user: User = Depends(require_manager()),
    service: LeaveService = Depends(get_leave_service),
):
    leave = service.approve_leave(leave_id, current_user)
    return {"message": describe_approval(leave), "leave": leave}


@router.put("/{leave_id}/reject", response_model=LeaveActionResponse)
def reject_leave(
    leave_id: int,
    data: LeaveRejectRequest,
    current_user: User = Depends(require_manager()),
    service: LeaveService = Depends(get_leave_service),
):
    leave = service.reject_leave(leave_id, current_user, data.rejection_reason)
    return {"message": "Leave rejected", "leave": leave}


@router.put("/{leave_id}/cancel", response_model=LeaveActionResponse)
def cancel_leave(
    leave_id: int,
    current_user: User = Depends(get_current_user),
    service: LeaveService = Depends(get_leave_service),
):
    leave = service.cancel_leave(leave_id, current_user)
    return {"message": "Leave cancelled", "leave": leave}


@router.delete("/{leave_id}")
def delete_leave(
    leave_id: int,
    current_user: User = Depends(require_manager()),
    service: LeaveService = Depends(get_leave_service),
):
    service.delete_leave(leave_id, current_user)
    return {"message": "Leave deleted successfully"}
