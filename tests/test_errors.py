from pathlib import Path

from etcutils.errors import (
    BackupError,
    ConcurrentModificationError,
    EtcUtilsError,
    LockError,
    NotFoundError,
    ParseError,
    PermissionDeniedError,
    UnsupportedError,
    ValidationError,
)


class TestMessages:
    def test_validation_field(self) -> None:
        e = ValidationError(field="uid", value="abc")
        assert str(e) == "Validation failed for uid: 'abc'"

    def test_validation_errors(self) -> None:
        e = ValidationError(errors=["a", "b"])
        assert e.errors == ["a", "b"]
        assert str(e) == "Validation failed: a, b"

    def test_parse_error(self) -> None:
        e = ParseError("bad", reason="short")
        assert isinstance(e, ValidationError)
        assert e.reason == "short"

    def test_not_found(self) -> None:
        e = NotFoundError(entity_type="user", identifier="bob")
        assert str(e) == "User not found: 'bob'"
        assert str(NotFoundError()) == "Entity not found"

    def test_permission_denied_hint(self) -> None:
        e = PermissionDeniedError(
            "Cannot write to /etc/passwd",
            path=Path("/etc/passwd"),
            operation="write",
        )
        assert e.platform_hint("linux") == "Try running with sudo or as root."
        assert e.platform_hint("windows") == "Run as Administrator."
        assert e.platform_hint("plan9") == "Check your permissions."
        assert str(e).startswith("Cannot write to /etc/passwd. ")

    def test_permission_denied_default(self) -> None:
        e = PermissionDeniedError(path="/etc/shadow", operation="read")
        assert str(e).startswith("Permission denied read /etc/shadow. ")

    def test_unsupported(self) -> None:
        e = UnsupportedError(operation="shadow access", platform="darwin")
        assert str(e) == "shadow access is not supported on darwin"
        assert e.operation == "shadow access"

    def test_lock_error(self) -> None:
        e = LockError(timeout=15, path="/etc/.pwd.lock")
        assert str(e) == "Could not acquire lock on /etc/.pwd.lock (timeout: 15s)"

    def test_concurrent(self) -> None:
        e = ConcurrentModificationError("/etc/group")
        assert "/etc/group was modified by another process" in str(e)

    def test_backup(self) -> None:
        e = BackupError("/etc/passwd", "No space left on device")
        assert str(e) == "Failed to back up /etc/passwd: No space left on device"

    def test_hierarchy(self) -> None:
        for cls in (
            ValidationError,
            NotFoundError,
            PermissionDeniedError,
            UnsupportedError,
            LockError,
            ConcurrentModificationError,
        ):
            assert issubclass(cls, EtcUtilsError)
