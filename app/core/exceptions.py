from fastapi import HTTPException, status
from app.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details


class InvalidInput(AppException):
    """Missing or malformed sku / warehouse / quantity on a ledger call."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            message,
            ErrorCode.INVALID_INPUT,
            details,
        )


class StorageFailure(AppException):
    """The atomic unit could not commit: connection loss, constraint
    violation, serialization conflict or timeout. Nothing was persisted."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            message,
            ErrorCode.STORAGE_FAILURE,
            details,
        )
