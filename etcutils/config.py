from __future__ import annotations
import dataclasses
import os
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

import yaml

from .constants import (
    ETCUTILS_CONFIG_ENV,
    GROUP_FILE,
    GSHADOW_FILE,
    LOCK_FILE,
    LOCK_TIMEOUT,
    PASSWD_FILE,
    SHADOW_FILE,
)
from .errors import EtcUtilsError
from . import utils

CfgNode = Any
CfgData = Dict[str, CfgNode]
_T = TypeVar("_T")

DEFAULT_FILES = dict(
    passwd=PASSWD_FILE,
    group=GROUP_FILE,
    shadow=SHADOW_FILE,
    gshadow=GSHADOW_FILE,
    lock=LOCK_FILE,
)


class ConfigError(EtcUtilsError):
    pass


def _expand_env_vars(in_str: str) -> str:
    """Wraps utils.expand_env_vars() to convert errors

    Raises:
      ConfigError: If a referenced environment variable is not set.
      ConfigError: An environment variable reference could not be parsed.
    """
    try:
        return utils.expand_env_vars(in_str)
    except KeyError as err:
        # pylint: disable=raise-missing-from
        raise ConfigError(
            f"Unset environment variable {err.args[0]!r} used in {in_str!r}"
        )
    except ValueError as ve:
        raise ConfigError(
            f"Unable to expand string '{in_str}' due to parsing errors"
        ) from ve


def _absoluteify_path(in_str: str, base_dir: Optional[Path] = None) -> Path:
    """Take a path string and make it absolute.

    Absolute paths are returned as-is.
    Relative paths must start with ./ or ../ and are joined to base_dir, if
    provided.

    Raises:
      ConfigError: A relative path does not start with "./" or "../".
      ConfigError: A relative path is given when base_dir is not provided.
    """
    path_str = _expand_env_vars(in_str)
    path = Path(path_str)

    if not path.is_absolute():
        if base_dir is None:
            raise ConfigError(f"Relative path not allowed: {path}")

        # Make sure it starts with ./ or ../
        # We have to use the original string input since Path() will remove ./
        valid_prefixes = ("./", "../")
        if not any(path_str.startswith(pfx) for pfx in valid_prefixes):
            raise ConfigError(
                f"Relative path must start with {' or '.join(valid_prefixes)}: {path}"
            )

        path = base_dir / path

    return path


def _get_typed_val(
    data: CfgData,
    key: str,
    type_: Type[_T],
    default: Optional[_T] = None,
) -> Optional[_T]:
    v = data.get(key, default)
    if v is not None and not isinstance(v, type_):
        raise ConfigError(f"{key!r} must be a {type_.__name__}, not {type(v).__name__}")
    return v


def _get_bool(data: CfgData, key: str, default: bool) -> bool:
    v = _get_typed_val(data, key, bool, default)
    assert v is not None
    return v


def _get_number(data: CfgData, key: str, default: float) -> float:
    v = data.get(key, default)
    # bool is an int subclass, but "lock_timeout: yes" is not a number
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ConfigError(f"{key!r} must be a number, not {type(v).__name__}")
    return float(v)


@dataclasses.dataclass(frozen=True)
class EtcConfig:
    """Where the account databases live and how they are written

    Database paths are resolved against root, so a config (or a test) can
    point the whole library at a chroot or a scratch directory.
    """

    root: Path = Path("/")
    lock_timeout: float = LOCK_TIMEOUT
    backup: bool = True
    continue_on_backup_error: bool = False
    detect_concurrent_changes: bool = True
    strict_parsing: bool = True
    files: Dict[str, str] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = [k for k in self.files if k not in DEFAULT_FILES]
        if unknown:
            raise ConfigError(f"Unknown database file(s): {', '.join(unknown)}")
        if self.lock_timeout < 0:
            raise ConfigError("'lock_timeout' must not be negative")

    def path_for(self, database: str) -> Path:
        """Get the path of a database file (passwd, group, shadow, gshadow, lock)"""
        rel = self.files.get(database) or DEFAULT_FILES[database]
        return Path(self.root) / rel

    @property
    def lock_path(self) -> Path:
        return self.path_for("lock")

    @classmethod
    def from_dict(
        cls, data: Optional[CfgData], base_dir: Optional[Path] = None
    ) -> EtcConfig:
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config must be a mapping, not {type(data).__name__}")

        optional_nodes = (
            "root",
            "lock_timeout",
            "backup",
            "continue_on_backup_error",
            "detect_concurrent_changes",
            "strict_parsing",
            "files",
        )

        # Check for unrecognized nodes
        extra = [n for n in data if not n in optional_nodes]
        if extra:
            raise ConfigError(
                f"Unrecognized node{'s' if len(extra) > 1 else ''}: "
                + ", ".join(extra)
            )

        root_str = _get_typed_val(data, "root", str)
        root = _absoluteify_path(root_str, base_dir) if root_str else Path("/")

        files = {}
        for name, node in (_get_typed_val(data, "files", dict) or {}).items():
            if not isinstance(node, str):
                raise ConfigError(f"files.{name} must be a string")
            files[name] = _expand_env_vars(node)

        return cls(
            root=root,
            lock_timeout=_get_number(data, "lock_timeout", LOCK_TIMEOUT),
            backup=_get_bool(data, "backup", True),
            continue_on_backup_error=_get_bool(data, "continue_on_backup_error", False),
            detect_concurrent_changes=_get_bool(
                data, "detect_concurrent_changes", True
            ),
            strict_parsing=_get_bool(data, "strict_parsing", True),
            files=files,
        )


def find_config() -> Optional[Path]:
    """Get the config file named by $ETCUTILS_CONFIG, if any"""
    path = os.environ.get(ETCUTILS_CONFIG_ENV)
    return Path(path) if path else None


def load_config(path: Optional[Path] = None) -> EtcConfig:
    """Load a config file

    With no path, the file named by $ETCUTILS_CONFIG is loaded; if that is
    not set either, the defaults apply.
    """
    if path is None:
        path = find_config()
        if path is None:
            return EtcConfig()

    try:
        with path.open("r") as f:
            data = yaml.load(f, yaml.SafeLoader)
    except IOError as e:
        raise ConfigError(f"Error opening {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Error loading {path}: {e}")

    return EtcConfig.from_dict(data, path.parent.absolute())
