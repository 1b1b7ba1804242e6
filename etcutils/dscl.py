"""Thin wrapper around macOS dscl(1), the Directory Service command line"""

from __future__ import annotations
import subprocess
from typing import Any, Dict, List, Optional

from .errors import EtcUtilsError

DSCL_PATH = "/usr/bin/dscl"
LOCAL_NODE = "."


class DsclError(EtcUtilsError):
    pass


class DsclExecuteError(DsclError):
    def __init__(self) -> None:
        super().__init__("Failed to execute dscl. Is this macOS?")


def _run_dscl(*args: str) -> subprocess.CompletedProcess[str]:
    """Run dscl against the local node and raise DsclExecuteError on ENOENT"""
    dscl_args = [DSCL_PATH, LOCAL_NODE] + list(args)
    kw: Dict[str, Any] = dict(text=True, capture_output=True)

    try:
        return subprocess.run(dscl_args, **kw)
    except FileNotFoundError as err:
        raise DsclExecuteError() from err


def dscl_list(path: str) -> Optional[List[str]]:
    """List the record names under a directory path (e.g. /Users)

    Returns None if dscl fails.
    """
    cp = _run_dscl("-list", path)
    if cp.returncode != 0:
        return None
    return [l.strip() for l in cp.stdout.splitlines() if l.strip()]


def dscl_read(path: str) -> Optional[Dict[str, List[str]]]:
    """Read the attributes of one record (e.g. /Users/root)

    Returns None if the record does not exist.
    """
    cp = _run_dscl("-read", path)
    if cp.returncode != 0:
        return None
    return parse_dscl_output(cp.stdout)


def parse_dscl_output(output: str) -> Dict[str, List[str]]:
    """Parse the key/value listing printed by `dscl -read`

    Values either follow the key on the same line, or are given on
    indented continuation lines:

        UniqueID: 0
        RealName:
         System Administrator
    """
    result: Dict[str, List[str]] = {}
    current_key: Optional[str] = None

    for line in output.splitlines():
        if line.startswith(" "):
            # Continuation line
            if current_key is not None and line.strip():
                result[current_key].append(line.strip())
        elif ":" in line:
            key, value = line.split(":", 1)
            current_key = key.strip()
            result[current_key] = []
            if value.strip():
                result[current_key].append(value.strip())

    return result


def first_value(attrs: Dict[str, List[str]], key: str) -> Optional[str]:
    """Get the first whitespace-separated token of an attribute"""
    values = attrs.get(key)
    if not values:
        return None
    tokens = values[0].split()
    return tokens[0] if tokens else None
