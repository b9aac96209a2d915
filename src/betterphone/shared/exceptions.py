"""
Shared application exceptions.

Routers raise these; create_app() maps them to JSON error bodies of the
form {"error": message}.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class AppError(Exception):
    message: str = "Application error"
    details: Optional[dict[str, Any]] = None

    status_code = 500

    def __str__(self) -> str:
        return self.message


class NotFoundError(AppError):
    status_code = 404


class ValidationError(AppError):
    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized", details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message=message, details=details)


class UpstreamServiceError(AppError):
    """A third-party call (LLM, storage) failed; message is safe to return."""

    status_code = 500


class StorageError(AppError):
    """Object storage operation failed."""

    status_code = 500

    def __init__(
        self,
        message: str = "Storage operation failed",
        operation: str = "",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, details=details)
        self.operation = operation
