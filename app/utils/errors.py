from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base application exception."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """A draft or filter failed validation before any I/O happened."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @property
    def fields(self) -> List[str]:
        return [e["field"] for e in self.errors if "field" in e]


class UploadError(AppError):
    """The object store was unreachable, rejected the content or timed out."""

    status_code = 502


class PersistenceError(AppError):
    """The report store failed or rejected the write."""

    status_code = 500


class NotFoundError(PersistenceError):
    status_code = 404
