"""The etcutils entry point: one object giving access to all account databases

    >>> db = EtcDatabase()                          # doctest: +SKIP
    >>> db.users.fetch("root").uid                  # doctest: +SKIP
    0
"""

from __future__ import annotations
from typing import Any, ContextManager, Iterable, Optional

from .backends import Backend, BackendRegistry, default_registry
from .collection import (
    GroupCollection,
    GShadowCollection,
    ShadowCollection,
    UserCollection,
)
from .config import EtcConfig
from .dryrun import DryRunResult
from .platform import Capabilities, detect_os


class EtcDatabase:
    """Facade over the backend serving one platform

    Args:
      config: Where the databases live and how they are written; defaults
        to EtcConfig().
      registry: Backends to choose from; defaults to default_registry().
      platform: Platform to serve; defaults to the host platform.

    Raises:
      UnsupportedError: No backend is registered for the platform.
    """

    def __init__(
        self,
        config: Optional[EtcConfig] = None,
        registry: Optional[BackendRegistry] = None,
        platform: Optional[str] = None,
    ):
        self.config = config or EtcConfig()
        self.registry = registry or default_registry()
        self.platform = platform or detect_os()
        self.backend: Backend = self.registry.backend_for(self.platform, self.config)

        self.users = UserCollection(self.backend)
        self.groups = GroupCollection(self.backend)
        self.shadow = ShadowCollection(self.backend)
        self.gshadow = GShadowCollection(self.backend)

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} platform={self.platform}"
            f" backend={self.backend.__class__.__name__}>"
        )

    def capabilities(self) -> Capabilities:
        return self.backend.capabilities()

    def supports(self, feature: str) -> bool:
        return self.backend.supports(feature)

    def lock(self, timeout: Optional[float] = None) -> ContextManager[Any]:
        """Hold the account database lock across several writes

        Writes made while holding it do not take the lock again.
        """
        return self.backend.lock(timeout)

    @property
    def locked(self) -> bool:
        return self.backend.locked

    def write_passwd(
        self,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        return self.backend.write_passwd(entries, backup=backup, dry_run=dry_run)

    def write_group(
        self,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        return self.backend.write_group(entries, backup=backup, dry_run=dry_run)

    def write_shadow(
        self,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        return self.backend.write_shadow(entries, backup=backup, dry_run=dry_run)

    def write_gshadow(
        self,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        return self.backend.write_gshadow(entries, backup=backup, dry_run=dry_run)

    def write(
        self,
        database: str,
        entries: Iterable[Any],
        backup: Optional[bool] = None,
        dry_run: bool = False,
    ) -> Optional[DryRunResult]:
        """Write one database by name (passwd, group, shadow or gshadow)"""
        writers = dict(
            passwd=self.write_passwd,
            group=self.write_group,
            shadow=self.write_shadow,
            gshadow=self.write_gshadow,
        )
        try:
            fn = writers[database]
        except KeyError:
            raise ValueError(f"Unknown database: {database!r}") from None
        return fn(entries, backup=backup, dry_run=dry_run)
