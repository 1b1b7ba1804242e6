from __future__ import annotations
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from .platform import detect_os

PathLike = Union[str, Path]


class EtcUtilsError(Exception):
    pass


class ValidationError(EtcUtilsError):
    """A record or record set is not acceptable

    Carries the offending field and value when a single field is at fault,
    or the list of problems found when validating a whole record set.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        field: Optional[str] = None,
        value: Any = None,
        errors: Optional[Sequence[str]] = None,
    ):
        self.field = field
        self.value = value
        self.errors: List[str] = list(errors or [])
        super().__init__(message or self._build_message())

    def _build_message(self) -> str:
        if self.field and self.value is not None:
            return f"Validation failed for {self.field}: {self.value!r}"
        if self.errors:
            return f"Validation failed: {', '.join(self.errors)}"
        return "Validation failed"


class ParseError(ValidationError):
    """A line could not be parsed into a record

    reason is "missing" for an absent line, "short" for a line with too
    few fields, and "field" for a single malformed field.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        reason: str = "field",
        field: Optional[str] = None,
        value: Any = None,
    ):
        self.reason = reason
        super().__init__(message, field=field, value=value)


class NotFoundError(EtcUtilsError):
    def __init__(
        self,
        message: Optional[str] = None,
        *,
        entity_type: Optional[str] = None,
        identifier: Union[str, int, None] = None,
    ):
        self.entity_type = entity_type
        self.identifier = identifier
        if message is None:
            if entity_type and identifier is not None:
                message = f"{entity_type.capitalize()} not found: {identifier!r}"
            else:
                message = "Entity not found"
        super().__init__(message)


class PermissionDeniedError(EtcUtilsError):
    """The caller lacks the filesystem privilege an operation needs"""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        path: Optional[PathLike] = None,
        operation: Optional[str] = None,
        required_privilege: Optional[str] = None,
    ):
        self.path = path
        self.operation = operation
        self.required_privilege = required_privilege
        self.message = message
        super().__init__(message or self._build_message())

    def platform_hint(self, platform: Optional[str] = None) -> str:
        platform = platform or detect_os()
        if platform == "linux":
            return "Try running with sudo or as root."
        if platform == "darwin":
            return (
                "Try running with sudo."
                " For user management, consider using dscl or System Settings."
            )
        if platform == "windows":
            return "Run as Administrator."
        return "Check your permissions."

    def _build_message(self) -> str:
        base = "Permission denied"
        if self.operation:
            base += f" {self.operation}"
        if self.path:
            base += f" {self.path}"
        return f"{base}. {self.platform_hint()}"

    def __str__(self) -> str:
        if self.message:
            return f"{self.message}. {self.platform_hint()}"
        return super().__str__()


class UnsupportedError(EtcUtilsError):
    def __init__(
        self,
        message: Optional[str] = None,
        *,
        operation: Optional[str] = None,
        platform: Optional[str] = None,
    ):
        self.operation = operation
        self.platform = platform or detect_os()
        if message is None:
            if operation:
                message = f"{operation} is not supported on {self.platform}"
            else:
                message = f"Operation not supported on {self.platform}"
        super().__init__(message)


class LockError(EtcUtilsError):
    def __init__(
        self,
        message: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        path: Optional[PathLike] = None,
    ):
        self.timeout = timeout
        self.path = path
        if message is None:
            message = "Could not acquire lock"
        if path:
            message += f" on {path}"
        if timeout is not None:
            message += f" (timeout: {timeout}s)"
        super().__init__(message)


class ConcurrentModificationError(EtcUtilsError):
    def __init__(self, path: Optional[PathLike] = None):
        self.path = path
        if path:
            msg = f"File {path} was modified by another process during write operation"
        else:
            msg = "File was modified by another process during write operation"
        super().__init__(msg)


class BackupError(EtcUtilsError):
    def __init__(self, path: PathLike, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to back up {path}: {reason}")
