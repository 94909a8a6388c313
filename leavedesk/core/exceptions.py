from typing import Any, Dict, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ValidationError(AppException):
    """Missing or malformed input, bad date ranges, unknown leave types."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details
        )


class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: Any = None):
        message = f"{entity} not found"
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details={"entity": entity, "id": entity_id} if entity_id is not None else None
        )


class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )


class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )


class InsufficientBalanceError(AppException):
    def __init__(self, leave_type: str, available: int, requested: int):
        super().__init__(
            message=(
                f"Insufficient {leave_type} balance. "
                f"Available: {available}, Requested: {requested}"
            ),
            status_code=400,
            error_code="INSUFFICIENT_BALANCE",
            details={"leave_type": leave_type, "available": available, "requested": requested}
        )


class OverlapConflictError(AppException):
    def __init__(self, leave_id: int, start_date, end_date):
        super().__init__(
            message=(
                f"You already have a leave request overlapping this period "
                f"({start_date.isoformat()} to {end_date.isoformat()})."
            ),
            status_code=409,
            error_code="LEAVE_OVERLAP",
            details={
                "conflicting_leave_id": leave_id,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            }
        )


class FileConflictError(AppException):
    def __init__(self, file_ids, message: str = "One or more files are invalid or attached to another leave"):
        super().__init__(
            message=message,
            status_code=409,
            error_code="FILE_CONFLICT",
            details={"file_ids": sorted(file_ids)}
        )


class InvalidTransitionError(AppException):
    def __init__(self, leave_id: int, current_status: str, action: str):
        super().__init__(
            message=f"Only pending leaves can be {action}; leave {leave_id} is {current_status}",
            status_code=409,
            error_code="INVALID_TRANSITION",
            details={"leave_id": leave_id, "status": current_status, "action": action}
        )


class ConcurrencyConflictError(AppException):
    def __init__(self, message: str = "The record was modified by another request. Please retry."):
        super().__init__(
            message=message,
            status_code=409,
            error_code="CONCURRENT_MODIFICATION"
        )
