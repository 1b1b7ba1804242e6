"""Thin wrapper around the Windows account APIs, through pywin32

Every call is made against the local computer, so only local accounts are
seen. pywin32 is imported on first use; on any other platform the calls
raise NetApiUnavailableError.
"""

from __future__ import annotations
import importlib
from typing import Any, Callable, Dict, Iterator, List, Optional

from .errors import EtcUtilsError

# None means the local computer
LOCAL_SERVER = None

USER_INFO_LEVEL = 3
GROUP_INFO_LEVEL = 1
MEMBERS_INFO_LEVEL = 3

# lmaccess.h FILTER_NORMAL_ACCOUNT
FILTER_NORMAL_ACCOUNT = 0x0002

# NERR_UserNotFound, NERR_GroupNotFound, ERROR_NO_SUCH_ALIAS, ERROR_NONE_MAPPED
NOT_FOUND_ERRORS = (2221, 2220, 1376, 1332)

NetInfo = Dict[str, Any]


class NetApiError(EtcUtilsError):
    pass


class NetApiUnavailableError(NetApiError):
    def __init__(self) -> None:
        super().__init__("Failed to load pywin32. Is this Windows?")


def _load(name: str) -> Any:
    """Import one pywin32 module"""
    try:
        return importlib.import_module(name)
    except ImportError as err:
        raise NetApiUnavailableError() from err


def _call(
    what: str,
    func: Callable[..., Any],
    *args: Any,
    missing_ok: bool = False,
) -> Any:
    """Call an API function, converting its errors

    With missing_ok, a "no such account" error gives None.
    """
    pywintypes = _load("pywintypes")
    try:
        return func(*args)
    except pywintypes.error as err:
        if missing_ok and err.winerror in NOT_FOUND_ERRORS:
            return None
        raise NetApiError(f"{what} failed: {err.strerror}") from err


def _enumerate(what: str, func: Callable[..., Any], *args: Any) -> Iterator[NetInfo]:
    """Page through a Net*Enum style call, which returns (data, total, resume)"""
    resume = 0
    while True:
        data, _, resume = _call(what, func, LOCAL_SERVER, *args, resume)
        yield from data
        if not resume:
            break


def net_users() -> List[NetInfo]:
    """List the local user accounts (USER_INFO_3 dicts)"""
    win32net = _load("win32net")
    return list(
        _enumerate(
            "NetUserEnum",
            win32net.NetUserEnum,
            USER_INFO_LEVEL,
            FILTER_NORMAL_ACCOUNT,
        )
    )


def net_user(name: str) -> Optional[NetInfo]:
    """Get one local user account, or None if there is none by that name"""
    win32net = _load("win32net")
    return _call(
        "NetUserGetInfo",
        win32net.NetUserGetInfo,
        LOCAL_SERVER,
        name,
        USER_INFO_LEVEL,
        missing_ok=True,
    )


def net_groups() -> List[NetInfo]:
    """List the local groups (LOCALGROUP_INFO_1 dicts)"""
    win32net = _load("win32net")
    return list(
        _enumerate("NetLocalGroupEnum", win32net.NetLocalGroupEnum, GROUP_INFO_LEVEL)
    )


def net_group(name: str) -> Optional[NetInfo]:
    """Get one local group, or None if there is none by that name"""
    win32net = _load("win32net")
    return _call(
        "NetLocalGroupGetInfo",
        win32net.NetLocalGroupGetInfo,
        LOCAL_SERVER,
        name,
        GROUP_INFO_LEVEL,
        missing_ok=True,
    )


def net_group_members(name: str) -> List[str]:
    """Get the account names of a local group's members, without domains"""
    win32net = _load("win32net")
    members = _enumerate(
        "NetLocalGroupGetMembers",
        win32net.NetLocalGroupGetMembers,
        name,
        MEMBERS_INFO_LEVEL,
    )
    # domainandname is "DOMAIN\name"
    return [m["domainandname"].rpartition("\\")[2] for m in members]


def account_sid(name: str) -> Optional[str]:
    """Get the SID of an account as a string (S-1-5-...), or None"""
    win32security = _load("win32security")
    found = _call(
        "LookupAccountName",
        win32security.LookupAccountName,
        LOCAL_SERVER,
        name,
        missing_ok=True,
    )
    if found is None:
        return None
    sid, _, _ = found
    return win32security.ConvertSidToStringSid(sid)


def sid_rid(sid: str) -> int:
    """Get the relative identifier, the last part of a SID"""
    return int(sid.rsplit("-", 1)[1])
