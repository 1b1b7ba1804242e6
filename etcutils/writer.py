from __future__ import annotations
import collections
import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from typing import Type

from .atomic import AtomicWriter
from .changeset import Change, calculate_changes
from .constants import FILE_ENCODING, FILE_ERRORS, LOCK_TIMEOUT, PUBLIC_FILE_MODE
from .constants import SECRET_FILE_MODE
from .dryrun import DryRunResult
from .errors import (
    ConcurrentModificationError,
    PermissionDeniedError,
    UnsupportedError,
    ValidationError,
)
from .lock import LockManager
from .platform import Capabilities
from .records import GShadow, Group, Record, Shadow, User
from .utils import is_int

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Database:
    """Static facts about one account database"""

    name: str
    record_type: Type[Any]
    mode: int
    # Key of this database in a capability table
    capability: str
    # Numeric field that should be unique, if any
    id_field: Optional[str] = None


DATABASES: Dict[str, Database] = {
    db.name: db
    for db in (
        Database("passwd", User, PUBLIC_FILE_MODE, "users", "uid"),
        Database("group", Group, PUBLIC_FILE_MODE, "groups", "gid"),
        Database("shadow", Shadow, SECRET_FILE_MODE, "shadow"),
        Database("gshadow", GShadow, SECRET_FILE_MODE, "gshadow"),
    )
}


def render(records: Iterable[Record]) -> str:
    """Render records as database file content, one line per record"""
    return "".join(r.to_entry() + "\n" for r in records)


class WriteEngine:
    """Replaces one account database with a caller-supplied record set

    Each write replaces the whole file: the records passed in become its
    complete contents. Writes run in this order:

      1. check the backend can write this database
      2. check the directory holding the file is writable
      3. validate the records and compute the change set
      4. (dry run: stop here and report)
      5. take the lock, and make sure the file did not change meanwhile
      6. back up the file, then atomically replace it
      7. release the lock, however the replace went
    """

    def __init__(
        self,
        database: str,
        path: Path,
        lock: LockManager,
        writer: AtomicWriter,
        capabilities: Capabilities,
        lock_timeout: float = LOCK_TIMEOUT,
        detect_concurrent_changes: bool = True,
    ):
        self.db = DATABASES[database]
        self.path = Path(path)
        self.lock = lock
        self.writer = writer
        self.capabilities = capabilities
        self.lock_timeout = lock_timeout
        self.detect_concurrent_changes = detect_concurrent_changes

    @property
    def platform(self) -> str:
        return str(self.capabilities.get("os", "unknown"))

    def check_capability(self) -> None:
        if not self.capabilities[self.db.capability]["write"]:
            raise UnsupportedError(
                operation=f"{self.db.name} writes",
                platform=self.platform,
            )

    def check_permission(self) -> None:
        dirpath = self.path.parent
        if not os.access(dirpath, os.W_OK):
            raise PermissionDeniedError(
                f"Cannot write to {self.path}",
                path=self.path,
                operation="write",
                required_privilege="root",
            )

    def read_current(self) -> List[str]:
        """Read the current database lines; a missing file has none"""
        try:
            with open(self.path, "r", encoding=FILE_ENCODING, errors=FILE_ERRORS) as f:
                return f.readlines()
        except FileNotFoundError:
            return []
        except PermissionError as err:
            raise PermissionDeniedError(
                f"Cannot read {self.path}",
                path=self.path,
                operation="read",
                required_privilege="root",
            ) from err

    def coerce(self, entries: Iterable[Any]) -> Tuple[List[Record], List[str]]:
        """Convert entries to records of this database's type

        Records pass through; mappings are used as keyword arguments.
        Returns the records and a list of entries that could not be used.
        """
        rtype = self.db.record_type
        records = []
        errors = []
        for i, entry in enumerate(entries):
            if isinstance(entry, rtype):
                records.append(entry)
                continue
            if isinstance(entry, Mapping):
                try:
                    records.append(rtype(**entry))
                    continue
                except TypeError as err:
                    errors.append(f"entry {i}: {err}")
                    continue
            errors.append(
                f"entry {i}: expected {rtype.__name__}, got {type(entry).__name__}"
            )
        return records, errors

    def validate(self, records: Sequence[Record]) -> Tuple[List[str], List[str]]:
        """Check a record set; returns (errors, warnings)"""
        errors: List[str] = []
        warnings: List[str] = []

        for r in records:
            errors += r.validate()

        names = collections.Counter(r.name for r in records if isinstance(r.name, str))
        for name, count in names.items():
            if count > 1:
                errors.append(f"duplicate {self.db.record_type.entity} name {name!r}")

        if self.db.id_field:
            ids = collections.Counter(
                getattr(r, self.db.id_field)
                for r in records
                if is_int(getattr(r, self.db.id_field))
            )
            for id_, count in ids.items():
                if count > 1:
                    warnings.append(f"{self.db.id_field} {id_} is used {count} times")

        return errors, warnings

    def _changes(self, records: Sequence[Record]) -> List[Change]:
        return calculate_changes(self.read_current(), records)

    def write(
        self,
        entries: Iterable[Any],
        backup: bool = True,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        """Replace the database with entries

        Returns a DryRunResult when dry_run is set, otherwise None.

        Raises:
          UnsupportedError: The backend cannot write this database.
          PermissionDeniedError: The database directory is not writable.
          ValidationError: The record set is invalid (real writes only).
          LockError: The lock was not acquired in time.
          ConcurrentModificationError: The file changed before the lock
            was acquired.
          BackupError: The backup failed.
        """
        self.check_capability()
        self.check_permission()

        records, errors = self.coerce(entries)
        more_errors, warnings = self.validate(records)
        errors += more_errors

        # Records failing their own checks may not render; leave them out of
        # the preview and the change set
        if errors:
            records = [r for r in records if not r.validate()]

        content = render(records)
        changes = self._changes(records)

        if dry_run:
            return DryRunResult(
                content=content,
                path=self.path,
                changes=changes,
                warnings=warnings,
                errors=errors,
                metadata=dict(entry_count=len(records), database=self.db.name),
            )

        if errors:
            raise ValidationError(errors=errors)
        for w in warnings:
            logger.warning("%s: %s", self.path, w)

        if not self.capabilities.get("locking"):
            raise UnsupportedError(operation="file locking", platform=self.platform)

        with self.lock.held(self.lock_timeout):
            if self.detect_concurrent_changes and self._changes(records) != changes:
                raise ConcurrentModificationError(self.path)

            if backup:
                self.writer.backup(self.path)
            self.writer.write(self.path, content, self.db.mode)

        logger.info(
            "Wrote %d %s entries to %s (%d changes)",
            len(records),
            self.db.name,
            self.path,
            len(changes),
        )
        return None
