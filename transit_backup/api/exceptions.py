"""Custom exceptions for FastAPI application."""

from fastapi import HTTPException
from starlette.status import (
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
)


class TransitBackupAPIError(HTTPException):
    """Base exception for transit-backup API errors."""
    pass


class BackupNotFoundHTTPError(TransitBackupAPIError):
    def __init__(self, backup_id: str):
        super().__init__(HTTP_404_NOT_FOUND, f"Backup not found: {backup_id}")


class JobNotFoundError(TransitBackupAPIError):
    def __init__(self, job_id: str):
        super().__init__(HTTP_404_NOT_FOUND, f"Job {job_id} not found")


class JobNotCancellableError(TransitBackupAPIError):
    def __init__(self, job_id: str):
        super().__init__(HTTP_409_CONFLICT, f"Job {job_id} is not a running restore in this process")


class AuthenticationRequiredError(TransitBackupAPIError):
    def __init__(self):
        super().__init__(
            HTTP_401_UNAUTHORIZED,
            "Operator token required",
            headers={"WWW-Authenticate": "Bearer"},
        )


class SuperOperatorRequiredError(TransitBackupAPIError):
    def __init__(self):
        super().__init__(HTTP_403_FORBIDDEN, "Super operator privileges required")
