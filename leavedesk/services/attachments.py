"""
Attachment Manager

Tracks uploaded files and their link to at most one leave:
- Upload validation and storage
- Guarded attach / detach inside the caller's transaction
- Single-file removal
- Orphaned (unattached) file cleanup
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from leavedesk.core.config import settings
from leavedesk.core.exceptions import (
    AccessDeniedError,
    FileConflictError,
    NotFoundError,
    ValidationError,
)
from leavedesk.models.file import File
from leavedesk.models.leave import Leave
from leavedesk.models.user import User
from leavedesk.services.base import BaseService
from leavedesk.services.storage import LocalFileStorage


@dataclass
class IncomingFile:
    filename: str
    content_type: str
    data: bytes


class AttachmentManager(BaseService):

    def __init__(self, db: Session, storage: LocalFileStorage):
        super().__init__(db)
        self.storage = storage

    # ------------------------------------------------------------------
    # Upload / removal
    # ------------------------------------------------------------------

    def upload(self, files: List[IncomingFile], uploader: Optional[User] = None) -> List[File]:
        """Validate and store uploads as unattached (temporary) files."""
        limits = settings.storage
        if not files:
            raise ValidationError("No files uploaded")
        if len(files) > limits.max_files_per_upload:
            raise ValidationError(
                f"At most {limits.max_files_per_upload} files can be uploaded at once",
                details={"received": len(files)},
            )
        for incoming in files:
            if incoming.content_type not in limits.allowed_content_types:
                raise ValidationError(
                    "File type not supported",
                    details={"filename": incoming.filename, "content_type": incoming.content_type},
                )
            if len(incoming.data) > limits.max_upload_bytes:
                raise ValidationError(
                    f"File exceeds the {limits.max_upload_bytes // (1024 * 1024)}MB limit",
                    details={"filename": incoming.filename, "size": len(incoming.data)},
                )

        stored_keys: List[str] = []
        records: List[File] = []
        try:
            with self.transaction():
                for incoming in files:
                    key, url = self.storage.save(incoming.data, incoming.filename)
                    stored_keys.append(key)
                    record = File(
                        name=incoming.filename,
                        url=url,
                        storage_key=key,
                        size=len(incoming.data),
                        type=incoming.content_type,
                        uploaded_by=uploader.id if uploader else None,
                    )
                    self.db.add(record)
                    records.append(record)
        except Exception:
            # Bytes written before the failure would otherwise have no record
            self.purge_stored(stored_keys)
            raise

        for record in records:
            self.db.refresh(record)
        self.log_info(f"Stored {len(records)} upload(s)", file_ids=[r.id for r in records])
        return records

    def remove_file(self, file_id: int, actor: User) -> None:
        """
        Delete a single file whatever its attachment state. Only the uploader
        or an admin/manager may do so.
        """
        record = self.db.query(File).filter(File.id == file_id).first()
        if record is None:
            raise NotFoundError("File", file_id)
        if record.uploaded_by != actor.id and not actor.can_approve:
            raise AccessDeniedError("You can only delete files you uploaded")

        key = record.storage_key
        with self.transaction():
            record.leave_id = None
            self.db.flush()
            self.db.delete(record)
        self.purge_stored([key])
        self.log_info(f"Deleted file {file_id}", file_id=file_id)

    def list_unattached(self, user: User, limit: int = 50) -> List[File]:
        query = self.db.query(File).filter(File.leave_id.is_(None))
        if not user.is_admin:
            query = query.filter(File.uploaded_by == user.id)
        return query.order_by(File.uploaded_at.desc(), File.id.desc()).limit(limit).all()

    # ------------------------------------------------------------------
    # Attach / detach (caller owns the transaction)
    # ------------------------------------------------------------------

    def attach(self, file_ids: Iterable[int], leave: Leave) -> None:
        """
        Link files to ``leave``. Each file must be unattached or already on
        this leave; otherwise FileConflictError and the caller rolls back.
        The conditional UPDATE keeps two concurrent attaches of the same file
        from both succeeding.
        """
        ids = set(file_ids)
        if not ids:
            return
        matched = (
            self.db.query(File)
            .filter(
                File.id.in_(sorted(ids)),
                or_(File.leave_id.is_(None), File.leave_id == leave.id),
            )
            .update({File.leave_id: leave.id}, synchronize_session=False)
        )
        self.db.expire(leave, ["attachments"])
        if matched != len(ids):
            conflicting = self._conflicting_ids(ids, leave.id)
            self.log_warning(
                f"Attach to leave {leave.id} rejected for files {sorted(conflicting)}",
                leave_id=leave.id,
            )
            raise FileConflictError(conflicting)

    def detach(self, file_ids: Iterable[int], leave: Leave) -> None:
        """
        Unlink files from ``leave``. Only files attached to this leave (or
        already unattached) may be named; anything else is FileConflictError.
        """
        ids = set(file_ids)
        if not ids:
            return
        conflicting = self._conflicting_ids(ids, leave.id)
        if conflicting:
            raise FileConflictError(conflicting, message="One or more files are not attached to this leave")
        (
            self.db.query(File)
            .filter(File.id.in_(sorted(ids)), File.leave_id == leave.id)
            .update({File.leave_id: None}, synchronize_session=False)
        )
        self.db.expire(leave, ["attachments"])

    def release_for_leave(self, leave: Leave) -> List[str]:
        """
        Delete the attachment records of a leave that is being deleted.
        Returns storage keys to purge once the transaction has committed.
        """
        records = self.db.query(File).filter(File.leave_id == leave.id).all()
        keys = [r.storage_key for r in records]
        for record in records:
            self.db.delete(record)
        self.db.flush()
        return keys

    def _conflicting_ids(self, ids: set, leave_id: int) -> set:
        usable = {
            row.id
            for row in self.db.query(File.id).filter(
                File.id.in_(sorted(ids)),
                or_(File.leave_id.is_(None), File.leave_id == leave_id),
            )
        }
        return ids - usable

    # ------------------------------------------------------------------
    # Storage cleanup
    # ------------------------------------------------------------------

    def purge_stored(self, keys: Iterable[str]) -> None:
        """Remove stored bytes after their records are gone. Failures are logged, not raised."""
        for key in keys:
            try:
                self.storage.delete(key)
            except OSError as e:
                self._logger.warning(f"Could not remove stored file {key}: {e}")

    def delete_orphaned(self, older_than: Optional[timedelta] = None) -> int:
        """
        Remove files with no leave. Each file is its own transaction: the
        record is deleted only if it is still unattached, then the bytes are
        removed. A failure on one file is logged and the sweep moves on; the
        file is picked up again on the next run. Safe to run concurrently.
        """
        query = self.db.query(File.id, File.storage_key).filter(File.leave_id.is_(None))
        if older_than is not None:
            cutoff = datetime.now(timezone.utc) - older_than
            query = query.filter(File.uploaded_at <= cutoff)
        candidates = query.order_by(File.id).all()

        removed = 0
        for file_id, key in candidates:
            try:
                with self.transaction():
                    deleted = (
                        self.db.query(File)
                        .filter(File.id == file_id, File.leave_id.is_(None))
                        .delete(synchronize_session=False)
                    )
            except Exception:
                self.log_error(f"Failed to delete orphaned file {file_id}", file_id=file_id)
                continue
            if deleted:
                self.purge_stored([key])
                removed += 1

        if candidates:
            self.log_info(f"Orphan cleanup removed {removed} of {len(candidates)} file(s)", removed=removed)
        return removed
