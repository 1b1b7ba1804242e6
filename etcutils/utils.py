import os
import string
from typing import Iterable, Iterator, List, Optional, Tuple

from .constants import COMMENT_PREFIX, FIELD_SEP, LIST_SEP


def chomp(line: str) -> str:
    """Strip one trailing line terminator (\\n or \\r\\n)"""
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


def split_fields(line: str) -> List[str]:
    """Split a database line into its fields

    Unlike some split implementations, trailing empty fields are kept:
    "a:b:" has three fields.
    """
    return chomp(line).split(FIELD_SEP)


def join_fields(fields: Iterable[str]) -> str:
    return FIELD_SEP.join(fields)


def split_list(field: str) -> Tuple[str, ...]:
    """Parse a comma-joined list field; the empty field is the empty list"""
    if not field:
        return ()
    return tuple(field.split(LIST_SEP))


def join_list(items: Iterable[str]) -> str:
    return LIST_SEP.join(items)


def format_int(val: Optional[int]) -> str:
    """Render a numeric field; None (absent) renders as the empty field"""
    return "" if val is None else str(val)


def is_int(val: object) -> bool:
    """Is val an integer? bool is an int subclass, but not a number here"""
    return isinstance(val, int) and not isinstance(val, bool)


def is_skippable(line: str) -> bool:
    """Blank and comment lines carry no record"""
    return not line.strip() or line.startswith(COMMENT_PREFIX)


def line_key(line: str) -> str:
    """Get the primary key (the first field) of a database line"""
    return chomp(line).split(FIELD_SEP, 1)[0]


def iter_entry_lines(lines: Iterable[str]) -> Iterator[str]:
    """Yield the record-bearing lines, without line terminators"""
    for line in lines:
        if is_skippable(line):
            continue
        yield chomp(line)


def expand_env_vars(in_str: str) -> str:
    """Expand environment variables in a string

    Can raise `KeyError` if a variable is referenced but not defined, similar to
    bash's nounset (set -u) option"""
    return string.Template(in_str).substitute(os.environ)
