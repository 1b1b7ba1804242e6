"""Platform backends: where account records come from and go to

A backend reads users and groups (and, where the platform has them, the
shadow databases) and, where supported, writes them back. Which backend
serves which platform is decided by a BackendRegistry value, not by
process-wide state, so callers and tests can supply their own.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Callable, ContextManager, Dict, Iterable, Iterator, List
from typing import Optional, Type, TypeVar, Union

from .atomic import AtomicWriter
from .config import EtcConfig
from .constants import FILE_ENCODING, FILE_ERRORS
from .dryrun import DryRunResult
from .dscl import dscl_list, dscl_read, first_value
from .errors import PermissionDeniedError, UnsupportedError
from .lock import LockManager
from .netapi import NetInfo, account_sid, net_group, net_group_members, net_groups
from .netapi import net_user, net_users, sid_rid
from .platform import DARWIN, LINUX, UNKNOWN, WINDOWS, Capabilities
from .platform import capabilities_for, supports
from .records import BsdUserFields, GShadow, Group, RecordBase, Shadow, User
from .records import iter_records
from .writer import WriteEngine

logger = logging.getLogger(__name__)

Identifier = Union[str, int]
_R = TypeVar("_R")
_Rec = TypeVar("_Rec", bound=RecordBase)


class Backend:
    """Interface every platform backend implements

    Users and groups must be readable. Shadow access, writes and locking are
    optional; by default they raise UnsupportedError.
    """

    platform_name: str = UNKNOWN

    def __init__(self, config: Optional[EtcConfig] = None):
        self.config = config or EtcConfig()

    def capabilities(self) -> Capabilities:
        return capabilities_for(self.platform_name)

    def supports(self, feature: str) -> bool:
        return supports(self.capabilities(), feature)

    def _unsupported(self, operation: str) -> UnsupportedError:
        return UnsupportedError(operation=operation, platform=self.platform_name)

    # Users and groups

    def each_user(self) -> Iterator[User]:
        raise NotImplementedError

    def each_group(self) -> Iterator[Group]:
        raise NotImplementedError

    def find_user(self, identifier: Identifier) -> Optional[User]:
        """Find a user by name or uid; the first match in database order wins"""
        return _find(self.each_user(), identifier, "uid")

    def find_group(self, identifier: Identifier) -> Optional[Group]:
        """Find a group by name or gid; the first match in database order wins"""
        return _find(self.each_group(), identifier, "gid")

    # Shadow databases

    def each_shadow(self) -> Iterator[Shadow]:
        raise self._unsupported("shadow access")

    def each_gshadow(self) -> Iterator[GShadow]:
        raise self._unsupported("gshadow access")

    def find_shadow(self, name: str) -> Optional[Shadow]:
        return _find(self.each_shadow(), name)

    def find_gshadow(self, name: str) -> Optional[GShadow]:
        return _find(self.each_gshadow(), name)

    # Writes

    def write_passwd(
        self,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        raise self._unsupported("passwd writes")

    def write_group(
        self,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        raise self._unsupported("group writes")

    def write_shadow(
        self,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        raise self._unsupported("shadow writes")

    def write_gshadow(
        self,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        raise self._unsupported("gshadow writes")

    # Locking

    def lock(self, timeout: Optional[float] = None) -> ContextManager[Any]:
        raise self._unsupported("file locking")

    @property
    def locked(self) -> bool:
        return False


def _find(
    records: Iterable[_R],
    identifier: Identifier,
    id_field: Optional[str] = None,
) -> Optional[_R]:
    for r in records:
        if isinstance(identifier, int) and not isinstance(identifier, bool):
            if id_field and getattr(r, id_field) == identifier:
                return r
        elif getattr(r, "name") == str(identifier):
            return r
    return None


class FileBackend(Backend):
    """Reads and writes the colon-delimited files under the configured root

    Every read scans the file again; nothing is cached between calls.
    """

    platform_name = LINUX

    def __init__(self, config: Optional[EtcConfig] = None):
        super().__init__(config)
        self._lock = LockManager(self.config.lock_path)
        self._writer = AtomicWriter(
            continue_on_backup_error=self.config.continue_on_backup_error
        )
        self._engines: Dict[str, WriteEngine] = {}

    def path_for(self, database: str) -> Path:
        return self.config.path_for(database)

    def _scan(self, database: str, cls: Type[_Rec]) -> Iterator[_Rec]:
        """Parse a database file; a missing file has no entries"""
        path = self.path_for(database)
        try:
            f = open(path, "r", encoding=FILE_ENCODING, errors=FILE_ERRORS)
        except FileNotFoundError:
            logger.debug("%s does not exist", path)
            return
        except PermissionError as err:
            raise PermissionDeniedError(
                f"Cannot read {path}",
                path=path,
                operation="read",
                required_privilege="root",
            ) from err

        with f:
            yield from iter_records(f, cls, strict=self.config.strict_parsing)

    def each_user(self) -> Iterator[User]:
        return self._scan("passwd", User)

    def each_group(self) -> Iterator[Group]:
        return self._scan("group", Group)

    def each_shadow(self) -> Iterator[Shadow]:
        return self._scan("shadow", Shadow)

    def each_gshadow(self) -> Iterator[GShadow]:
        return self._scan("gshadow", GShadow)

    def engine(self, database: str) -> WriteEngine:
        """Get the write engine of one database; all share one lock"""
        if database not in self._engines:
            self._engines[database] = WriteEngine(
                database,
                self.path_for(database),
                lock=self._lock,
                writer=self._writer,
                capabilities=self.capabilities(),
                lock_timeout=self.config.lock_timeout,
                detect_concurrent_changes=self.config.detect_concurrent_changes,
            )
        return self._engines[database]

    def _write(
        self,
        database: str,
        entries: Iterable[Any],
        backup: Optional[bool],
        dry_run: bool,
    ) -> Optional[DryRunResult]:
        if backup is None:
            backup = self.config.backup
        return self.engine(database).write(entries, backup=backup, dry_run=dry_run)

    def write_passwd(
        self,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        return self._write("passwd", entries, backup, dry_run)

    def write_group(
        self,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        return self._write("group", entries, backup, dry_run)

    def write_shadow(
        self,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        return self._write("shadow", entries, backup, dry_run)

    def write_gshadow(
        self,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        return self._write("gshadow", entries, backup, dry_run)

    def lock(self, timeout: Optional[float] = None) -> ContextManager[Any]:
        if timeout is None:
            timeout = self.config.lock_timeout
        return self._lock.held(timeout)

    @property
    def locked(self) -> bool:
        return self._lock.locked


def _to_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


class DarwinBackend(Backend):
    """Read-only access to macOS Directory Services through dscl

    Service accounts (names starting with "_") are not listed, but can
    still be looked up by name. There are no shadow databases, and the
    files under /etc are not authoritative, so nothing can be written.
    """

    platform_name = DARWIN

    def _names(self, path: str) -> List[str]:
        names = dscl_list(path) or []
        return [n for n in names if not n.startswith("_")]

    def _read_user(self, name: str) -> Optional[User]:
        attrs = dscl_read(f"/Users/{name}")
        if attrs is None:
            logger.debug("No directory record for user %r", name)
            return None
        realname = attrs.get("RealName")
        return User(
            name=name,
            # Passwords are never exposed
            passwd="x",
            uid=_to_int(first_value(attrs, "UniqueID")),
            gid=_to_int(first_value(attrs, "PrimaryGroupID")),
            gecos=realname[0] if realname else "",
            dir=first_value(attrs, "NFSHomeDirectory") or "/var/empty",
            shell=first_value(attrs, "UserShell") or "/usr/bin/false",
            bsd=BsdUserFields(pw_class="", change=0, expire=0),
        )

    def _read_group(self, name: str) -> Optional[Group]:
        attrs = dscl_read(f"/Groups/{name}")
        if attrs is None:
            logger.debug("No directory record for group %r", name)
            return None
        # GroupMembership is space-separated
        membership = attrs.get("GroupMembership") or [""]
        return Group(
            name=name,
            passwd="*",
            gid=_to_int(first_value(attrs, "PrimaryGroupID")),
            members=" ".join(membership).split(),
        )

    def each_user(self) -> Iterator[User]:
        for name in self._names("/Users"):
            user = self._read_user(name)
            if user is not None:
                yield user

    def each_group(self) -> Iterator[Group]:
        for name in self._names("/Groups"):
            group = self._read_group(name)
            if group is not None:
                yield group

    def find_user(self, identifier: Identifier) -> Optional[User]:
        if isinstance(identifier, int):
            return super().find_user(identifier)
        return self._read_user(identifier)

    def find_group(self, identifier: Identifier) -> Optional[Group]:
        if isinstance(identifier, int):
            return super().find_group(identifier)
        return self._read_group(identifier)


class WindowsBackend(Backend):
    """Read-only access to the local Windows account database (SAM)

    Windows has no numeric user and group ids. uid and gid are the relative
    identifiers (RIDs) of the accounts' SIDs; sid() gives the whole SID.
    There are no shadow databases, and nothing can be written or locked.
    """

    platform_name = WINDOWS

    def sid(self, name: str) -> Optional[str]:
        """Get the SID of a local user or group, or None"""
        return account_sid(name)

    def _user(self, info: NetInfo) -> User:
        return User(
            name=info["name"],
            # Passwords are never exposed
            passwd="x",
            uid=info.get("user_id"),
            gid=info.get("primary_group_id"),
            gecos=info.get("full_name") or info.get("comment") or "",
            dir=info.get("home_dir") or "",
            shell="",
        )

    def _group(self, name: str) -> Group:
        sid = account_sid(name)
        return Group(
            name=name,
            passwd="*",
            gid=sid_rid(sid) if sid else None,
            members=net_group_members(name),
        )

    def each_user(self) -> Iterator[User]:
        for info in net_users():
            yield self._user(info)

    def each_group(self) -> Iterator[Group]:
        for info in net_groups():
            yield self._group(info["name"])

    def find_user(self, identifier: Identifier) -> Optional[User]:
        if isinstance(identifier, int):
            return super().find_user(identifier)
        info = net_user(identifier)
        if info is None:
            logger.debug("No local account for user %r", identifier)
            return None
        return self._user(info)

    def find_group(self, identifier: Identifier) -> Optional[Group]:
        if isinstance(identifier, int):
            return super().find_group(identifier)
        info = net_group(identifier)
        if info is None:
            logger.debug("No local group %r", identifier)
            return None
        return self._group(info["name"])


BackendFactory = Callable[[EtcConfig], Backend]


class BackendRegistry:
    """Maps platform names to the backend serving them"""

    def __init__(self) -> None:
        self._factories: Dict[str, BackendFactory] = {}

    def register(
        self, platform: str, backend: Union[Backend, BackendFactory]
    ) -> None:
        """Register a backend instance, or a factory taking an EtcConfig"""
        if isinstance(backend, Backend):
            instance = backend
            self._factories[platform] = lambda config: instance
        else:
            self._factories[platform] = backend

    def unregister(self, platform: str) -> None:
        self._factories.pop(platform, None)

    @property
    def registered_platforms(self) -> List[str]:
        return list(self._factories)

    def backend_for(
        self, platform: str, config: Optional[EtcConfig] = None
    ) -> Backend:
        """Build the backend for a platform

        Raises UnsupportedError if no backend is registered for it.
        """
        try:
            factory = self._factories[platform]
        except KeyError:
            raise UnsupportedError(
                operation="platform support", platform=platform
            ) from None
        return factory(config or EtcConfig())


def default_registry() -> BackendRegistry:
    """Get a new registry holding the backends shipped with etcutils"""
    registry = BackendRegistry()
    registry.register(LINUX, FileBackend)
    registry.register(DARWIN, DarwinBackend)
    registry.register(WINDOWS, WindowsBackend)
    return registry
