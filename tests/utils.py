from __future__ import annotations
import os
from os.path import normpath
from pathlib import Path
from textwrap import dedent
from typing import Any, List, Sequence, Union

PathStr = Union[Path, str]


ETC_PASSWD = dedent(
    """\
    root:x:0:0:root:/root:/bin/bash
    daemon:x:1:1:daemon:/usr/sbin:/usr/sbin/nologin
    alice:x:1000:1000:Alice Example,,,:/home/alice:/bin/bash
    bob:x:1001:1001::/home/bob:/bin/sh
    nobody:x:65534:65534:nobody:/nonexistent:/usr/sbin/nologin
    """
)

ETC_GROUP = dedent(
    """\
    root:x:0:
    daemon:x:1:
    wheel:x:10:alice,bob
    alice:x:1000:
    bob:x:1001:
    nogroup:x:65534:
    """
)

ETC_SHADOW = dedent(
    """\
    root:!:19000:0:99999:7:::
    daemon:*:19000:0:99999:7:::
    alice:$6$salt$hash:19500:0:90:7:14::
    bob:!$6$salt$hash:19500:0:99999:7:::
    nobody:*:19000:0:99999:7:::
    """
)

ETC_GSHADOW = dedent(
    """\
    root:*::
    daemon:*::
    wheel:!:alice:alice,bob
    alice:!::
    bob:!::
    nogroup:*::
    """
)


def assert_seq_equal(a: Sequence, b: Sequence) -> None:
    assert list(a) == list(b)


def assert_paths_equal(a: PathStr, b: PathStr) -> None:
    # NOTE: normpath() can behave undesirably in the face of symlinks, so this
    # comparison is probably not perfect.
    assert normpath(a) == normpath(b)


def assert_str_equalish(exp: Any, act: Any) -> None:
    exp = str(exp).strip()
    act = str(act).strip()
    assert exp == act


def file_mode(path: PathStr) -> int:
    return os.stat(path).st_mode & 0o777


def read_lines(path: PathStr) -> List[str]:
    return Path(path).read_text().splitlines()


def temp_files(directory: PathStr) -> List[str]:
    """Get leftover temporary files written beside a database"""
    return sorted(p.name for p in Path(directory).glob(".*.tmp"))
