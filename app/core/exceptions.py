from fastapi import HTTPException, status
from typing import Any, Dict, NoReturn
from app.core.error_codes import ErrorCode

class AppException(HTTPException):
    def __init__(
        self,
        *,
        error_code: ErrorCode,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        user_message: str | None = None,
        details: Dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status_code,
            detail={"error_code": error_code, "user_message": user_message, "details": details},
        )
        self.error_code = error_code
        self.user_message = user_message
        self.details = details

def raise_error(
    code: ErrorCode,
    status_code: int,
    user_message: str | None = None,
    details: Dict[str, Any] | None = None,
) -> NoReturn:
    raise AppException(error_code=code, status_code=status_code, user_message=user_message, details=details)


class DuplicateEntryError(Exception):
    """A write hit a unique index. ``field`` names the offending column/key."""

    def __init__(self, field: str, message: str | None = None):
        super().__init__(message or f"Duplicate value for {field}")
        self.field = field
