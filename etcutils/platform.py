"""Host platform detection and per-platform capabilities"""

from __future__ import annotations
import platform as host_platform
import sys
from typing import Any, Dict, Optional

Capabilities = Dict[str, Any]

LINUX = "linux"
DARWIN = "darwin"
WINDOWS = "windows"
UNKNOWN = "unknown"

# Record kinds, in the order capabilities are reported
KINDS = ("users", "groups", "shadow", "gshadow")


def detect_os(sys_platform: Optional[str] = None) -> str:
    """Map sys.platform onto one of linux, darwin, windows, unknown"""
    p = (sys_platform or sys.platform).lower()
    if p.startswith("linux"):
        return LINUX
    if p.startswith("darwin"):
        return DARWIN
    if p.startswith(("win32", "cygwin", "msys")):
        return WINDOWS
    return UNKNOWN


def os_version() -> str:
    return host_platform.release() or "unknown"


def _caps(
    os_name: str,
    read: Dict[str, bool],
    write: Dict[str, bool],
    locking: bool,
) -> Capabilities:
    from .version import __version__

    caps: Capabilities = dict(
        os=os_name,
        os_version=os_version(),
        version=__version__,
    )
    for kind in KINDS:
        caps[kind] = dict(read=read.get(kind, False), write=write.get(kind, False))
    caps["locking"] = locking
    return caps


def capabilities_for(os_name: str) -> Capabilities:
    """Get the capability table of the backend shipped for os_name

    Linux has full read/write access to all four databases. macOS can read
    users and groups through Directory Services, and Windows through the
    local account database. Everything else has no backend.
    """
    everything = {kind: True for kind in KINDS}

    if os_name == LINUX:
        return _caps(os_name, read=everything, write=everything, locking=True)

    if os_name in (DARWIN, WINDOWS):
        return _caps(
            os_name,
            read=dict(users=True, groups=True),
            write={},
            locking=False,
        )

    return _caps(os_name, read={}, write={}, locking=False)


def supports(caps: Capabilities, feature: str) -> bool:
    """Look up a feature name in a capability table

    Features are "<kind>" or "<kind>_read" for read access, "<kind>_write"
    for write access, or "locking". Unknown features are unsupported.
    """
    if feature == "locking":
        return bool(caps.get("locking"))

    kind, _, access = feature.partition("_")
    if not access:
        access = "read"
    if kind not in KINDS or access not in ("read", "write"):
        return False
    return bool(caps[kind][access])
