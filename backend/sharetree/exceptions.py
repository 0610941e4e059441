"""Custom exception hierarchy for ShareTree."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Lookup errors
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    GRANT_NOT_FOUND = "GRANT_NOT_FOUND"

    # Authentication errors
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"

    # Authorization errors
    PERMISSION_DENIED = "PERMISSION_DENIED"
    ROOT_FOLDER_PROTECTED = "ROOT_FOLDER_PROTECTED"

    # Tree structure errors
    DEPTH_LIMIT_EXCEEDED = "DEPTH_LIMIT_EXCEEDED"
    NAME_CONFLICT = "NAME_CONFLICT"
    CYCLE_DETECTED = "CYCLE_DETECTED"
    GRANT_CONFLICT = "GRANT_CONFLICT"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    STORAGE_QUOTA_EXCEEDED = "STORAGE_QUOTA_EXCEEDED"

    # Storage errors
    STORAGE_IO_ERROR = "STORAGE_IO_ERROR"
    INCONSISTENT_STATE = "INCONSISTENT_STATE"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ShareTreeException(Exception):
    """
    Base exception for all ShareTree errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        Returns:
            Dictionary with error, message, and details fields
        """
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class NotFoundError(ShareTreeException):
    """A folder, file, user or grant does not exist (or is not visible to the caller)."""

    def __init__(self, message: str, error_code: ErrorCode, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, status_code=404, details=details)


class FolderNotFoundError(NotFoundError):
    """Folder not found in database."""

    def __init__(self, folder_id: str):
        super().__init__(
            f"Folder not found: {folder_id}",
            ErrorCode.FOLDER_NOT_FOUND,
            details={"folder_id": folder_id}
        )


class FileRecordNotFoundError(NotFoundError):
    """File not found in database."""

    def __init__(self, file_id: str):
        super().__init__(
            f"File not found: {file_id}",
            ErrorCode.FILE_NOT_FOUND,
            details={"file_id": file_id}
        )


class UserNotFoundError(NotFoundError):
    """User not found in database."""

    def __init__(self, user_id: str):
        super().__init__(
            f"User not found: {user_id}",
            ErrorCode.USER_NOT_FOUND,
            details={"user_id": user_id}
        )


class GrantNotFoundError(NotFoundError):
    """The user holds no grant on the target."""

    def __init__(self, user_id: str, target_id: str):
        super().__init__(
            f"User {user_id} has no permission on {target_id}",
            ErrorCode.GRANT_NOT_FOUND,
            details={"user_id": user_id, "target_id": target_id}
        )


class AuthenticationError(ShareTreeException):
    """No caller identity could be resolved for the request."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, ErrorCode.AUTHENTICATION_REQUIRED, status_code=401)


class PermissionDeniedError(ShareTreeException):
    """Caller lacks the permission level required for the action."""

    def __init__(self, message: str = "You do not have permission to perform this action", target_id: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.PERMISSION_DENIED,
            status_code=403,
            details={"target_id": target_id} if target_id else {}
        )


class RootFolderProtectedError(ShareTreeException):
    """Root folders can never be renamed, moved, deleted or shared."""

    def __init__(self, folder_id: str, action: str):
        super().__init__(
            f"Cannot {action} a root folder",
            ErrorCode.ROOT_FOLDER_PROTECTED,
            status_code=403,
            details={"folder_id": folder_id, "action": action}
        )


class DepthLimitExceededError(ShareTreeException):
    """Creating or moving here would nest folders past MAX_SUBFOLDER_DEPTH."""

    def __init__(self, depth: int, max_depth: int):
        super().__init__(
            f"You cannot create more than {max_depth} subfolder levels",
            ErrorCode.DEPTH_LIMIT_EXCEEDED,
            status_code=422,
            details={"depth": depth, "max_depth": max_depth}
        )


class NameConflictError(ShareTreeException):
    """A sibling with the same name already exists."""

    def __init__(self, name: str, parent_id: str):
        super().__init__(
            f"An item named '{name}' already exists in this folder",
            ErrorCode.NAME_CONFLICT,
            status_code=409,
            details={"name": name, "parent_id": parent_id}
        )


class CycleDetectedError(ShareTreeException):
    """Move target is the folder itself or one of its descendants."""

    def __init__(self, folder_id: str, target_id: str):
        super().__init__(
            "Cannot move folder into itself or its own descendant",
            ErrorCode.CYCLE_DETECTED,
            status_code=409,
            details={"folder_id": folder_id, "target_id": target_id}
        )


class GrantConflictError(ShareTreeException):
    """The user already holds a grant on the target."""

    def __init__(self, user_id: str, target_id: str):
        super().__init__(
            "The user already has a permission on this item. Change it instead of granting again",
            ErrorCode.GRANT_CONFLICT,
            status_code=409,
            details={"user_id": user_id, "target_id": target_id}
        )


class ValidationError(ShareTreeException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class StorageQuotaExceededError(ShareTreeException):
    """The upload would push the owner past the storage limit."""

    def __init__(self, used_bytes: int, limit_bytes: int):
        super().__init__(
            f"You have exceeded your storage limit of {limit_bytes / (1024 ** 3):g}GB",
            ErrorCode.STORAGE_QUOTA_EXCEEDED,
            status_code=403,
            details={"used_bytes": used_bytes, "limit_bytes": limit_bytes}
        )


class StorageIOError(ShareTreeException):
    """The object store failed to perform an operation."""

    def __init__(self, operation: str, key: str, original_error: Optional[Exception] = None):
        details: Dict[str, Any] = {"operation": operation, "key": key}
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(
            f"Storage {operation} failed for {key}",
            ErrorCode.STORAGE_IO_ERROR,
            status_code=500,
            details=details
        )


class InconsistentStateError(ShareTreeException):
    """Relational and physical stores disagree after a partial failure.

    Returned as a warning on a committed operation rather than raised:
    the metadata change stands and the storage effect is queued for repair.
    """

    def __init__(self, target_type: str, target_id: str, repair_task_id: str, cause: str):
        super().__init__(
            f"Storage is out of sync for {target_type} {target_id}; repair scheduled",
            ErrorCode.INCONSISTENT_STATE,
            status_code=200,
            details={
                "target_type": target_type,
                "target_id": target_id,
                "repair_task_id": repair_task_id,
                "cause": cause,
            }
        )


class DatabaseError(ShareTreeException):
    """Database operation failed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message,
            ErrorCode.DATABASE_ERROR,
            status_code=500,
            details=details
        )
