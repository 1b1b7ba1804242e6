"""Account database records and their colon-delimited line format

Each record kind is a frozen dataclass whose field order matches the
on-disk column order. ``parse()`` turns one line into a record and
``to_entry()`` renders it back; for every well-formed line the pair is
lossless:

    >>> User.parse("root:x:0:0:root:/root:/bin/bash").to_entry()
    'root:x:0:0:root:/root:/bin/bash'

Numeric columns distinguish an empty field (``None``) from zero, and list
columns parse the empty field to the empty tuple. A numeral that is not
in canonical form ("04") is written back the way it was read, as long as
its value is unchanged.
"""

from __future__ import annotations
import dataclasses
import logging
from pathlib import Path
import re
import time
from typing import Any, ClassVar, Dict, Iterable, Iterator, List, Mapping, Optional
from typing import Tuple, Type, TypeVar, Union

from .constants import FIELD_SEP, FILE_ENCODING, FILE_ERRORS, LIST_SEP
from .constants import NEVER_EXPIRES
from .errors import ParseError
from .utils import (
    format_int,
    is_int,
    is_skippable,
    join_fields,
    join_list,
    split_fields,
    split_list,
)

logger = logging.getLogger(__name__)

_INT_PATTERN = re.compile(r"^-?[0-9]+$")

# Characters that would split or corrupt one entry of a list column
_LIST_FORBIDDEN = (LIST_SEP, FIELD_SEP, "\n")

_R = TypeVar("_R", bound="RecordBase")


def _parse_int(field: str, text: str, strict: bool) -> Optional[int]:
    """Parse a numeric column

    The empty field is None. A malformed field raises ParseError when
    strict, otherwise it is logged and treated as absent.
    """
    if text == "":
        return None
    if _INT_PATTERN.match(text):
        return int(text)
    if strict:
        raise ParseError(
            f"Invalid {field}: expected an integer, got {text!r}",
            field=field,
            value=text,
        )
    logger.warning("Ignoring non-numeric %s field %r", field, text)
    return None


def _numerals_field() -> Any:
    # Spelling of numerals read in non-canonical form, keyed by field
    return dataclasses.field(
        default_factory=dict, init=False, repr=False, compare=False
    )


class RecordBase:
    """Behavior shared by all record kinds"""

    # Database name ("passwd", "group", ...) and what one record is called
    database: ClassVar[str]
    entity: ClassVar[str]
    min_fields: ClassVar[int]

    # Columns by kind, for validate()
    text_fields: ClassVar[Tuple[str, ...]] = ()
    int_fields: ClassVar[Tuple[str, ...]] = ()
    list_fields: ClassVar[Tuple[str, ...]] = ()

    name: str
    _numerals: Dict[str, str]

    @classmethod
    def parse(cls: Type[_R], entry: Optional[str], strict: bool = True) -> _R:
        if entry is None:
            raise ParseError(
                "Cannot parse nil entry",
                reason="missing",
                field="entry",
            )

        parts = split_fields(entry)
        if len(parts) < cls.min_fields:
            raise ParseError(
                f"Invalid {cls.database} entry: expected at least"
                f" {cls.min_fields} fields, got {len(parts)}",
                reason="short",
                field="entry",
                value=entry,
            )
        return cls._from_fields(parts, strict)

    @classmethod
    def _from_fields(cls: Type[_R], parts: List[str], strict: bool) -> _R:
        raise NotImplementedError

    def to_entry(self) -> str:
        raise NotImplementedError

    def _keep_numerals(self: _R, **texts: str) -> _R:
        numerals = {
            field: text
            for field, text in texts.items()
            if _INT_PATTERN.match(text) and str(int(text)) != text
        }
        object.__setattr__(self, "_numerals", numerals)
        return self

    def _format_int(self, field: str, value: Optional[int]) -> str:
        """Render a numeric column, spelled as it was read if unchanged"""
        text = self._numerals.get(field)
        if text is not None and value is not None and int(text) == value:
            return text
        return format_int(value)

    @property
    def key(self) -> str:
        return self.name

    def validate(self) -> List[str]:
        """Check that the record can be written without corrupting the file

        Returns a list of problems; an empty list means the record is valid.
        """
        errors = []
        if not self.name:
            errors.append(f"{self.entity} name must not be empty")

        label = f"{self.entity} {self.name!r}"
        for field in self.text_fields:
            value = getattr(self, field)
            if not isinstance(value, str):
                errors.append(
                    f"{label}: {field} must be a string, not {type(value).__name__}"
                )
            elif FIELD_SEP in value or "\n" in value:
                errors.append(
                    f"{label}: {field} contains a field separator or newline"
                )

        for field in self.int_fields:
            value = getattr(self, field)
            if value is not None and not is_int(value):
                errors.append(
                    f"{label}: {field} must be an integer, not {type(value).__name__}"
                )

        for field in self.list_fields:
            for item in getattr(self, field):
                if (
                    not isinstance(item, str)
                    or not item
                    or any(c in item for c in _LIST_FORBIDDEN)
                ):
                    errors.append(f"{label}: invalid {field} entry {item!r}")
        return errors

    def to_dict(self, compact: bool = False) -> Dict[str, Any]:
        data = dataclasses.asdict(self)  # type: ignore[call-overload]
        data.pop("_numerals", None)
        if compact:
            data = {k: v for k, v in data.items() if v is not None}
        return data

    def _freeze_list(self, attr: str) -> None:
        # Accept any iterable of names; store an immutable tuple
        value = getattr(self, attr)
        if isinstance(value, str):
            value = split_list(value)
        object.__setattr__(self, attr, tuple(value or ()))


@dataclasses.dataclass(frozen=True)
class BsdUserFields:
    """The columns BSD-derived systems (macOS) add to a user entry"""

    pw_class: str = ""
    change: Optional[int] = None
    expire: Optional[int] = None


@dataclasses.dataclass(frozen=True)
class User(RecordBase):
    """A user account (one line of /etc/passwd)

    Standard form: name:passwd:uid:gid:gecos:dir:shell
    BSD form:      name:passwd:uid:gid:class:change:expire:gecos:dir:shell

    A user parsed from the BSD form keeps its extra columns in ``bsd`` and
    is rendered back in the BSD form.
    """

    database: ClassVar[str] = "passwd"
    entity: ClassVar[str] = "user"
    min_fields: ClassVar[int] = 7
    bsd_fields: ClassVar[int] = 10
    text_fields = ("name", "passwd", "gecos", "dir", "shell")
    int_fields = ("uid", "gid")

    name: str
    passwd: str = "x"
    uid: Optional[int] = None
    gid: Optional[int] = None
    gecos: str = ""
    dir: str = ""
    shell: str = ""
    bsd: Optional[BsdUserFields] = None
    _numerals: Dict[str, str] = _numerals_field()

    def __post_init__(self) -> None:
        if isinstance(self.bsd, Mapping):
            object.__setattr__(self, "bsd", BsdUserFields(**self.bsd))

    @classmethod
    def _from_fields(cls, parts: List[str], strict: bool) -> User:
        if len(parts) >= cls.bsd_fields:
            return cls(
                name=parts[0],
                passwd=parts[1],
                uid=_parse_int("uid", parts[2], strict),
                gid=_parse_int("gid", parts[3], strict),
                bsd=BsdUserFields(
                    pw_class=parts[4],
                    change=_parse_int("change", parts[5], strict),
                    expire=_parse_int("expire", parts[6], strict),
                ),
                gecos=parts[7],
                dir=parts[8],
                shell=parts[9],
            )._keep_numerals(
                uid=parts[2], gid=parts[3], change=parts[5], expire=parts[6]
            )

        return cls(
            name=parts[0],
            passwd=parts[1],
            uid=_parse_int("uid", parts[2], strict),
            gid=_parse_int("gid", parts[3], strict),
            gecos=parts[4],
            dir=parts[5],
            shell=parts[6],
        )._keep_numerals(uid=parts[2], gid=parts[3])

    def to_entry(self) -> str:
        head = [
            self.name,
            self.passwd,
            self._format_int("uid", self.uid),
            self._format_int("gid", self.gid),
        ]
        tail = [self.gecos, self.dir, self.shell]
        if self.bsd is not None:
            head += [
                self.bsd.pw_class,
                self._format_int("change", self.bsd.change),
                self._format_int("expire", self.bsd.expire),
            ]
        return join_fields(head + tail)

    @property
    def home(self) -> str:
        return self.dir

    def validate(self) -> List[str]:
        errors = super().validate()
        for field in ("uid", "gid"):
            value = getattr(self, field)
            if value is None:
                errors.append(f"user {self.name!r}: {field} is required")
            elif is_int(value) and value < 0:
                errors.append(f"user {self.name!r}: {field} must not be negative")

        if self.bsd is None:
            return errors
        if not isinstance(self.bsd, BsdUserFields):
            errors.append(f"user {self.name!r}: bad BSD fields {self.bsd!r}")
            return errors
        if not isinstance(self.bsd.pw_class, str) or FIELD_SEP in self.bsd.pw_class:
            errors.append(f"user {self.name!r}: invalid class {self.bsd.pw_class!r}")
        for field in ("change", "expire"):
            value = getattr(self.bsd, field)
            if value is not None and not is_int(value):
                errors.append(f"user {self.name!r}: {field} must be an integer")
        return errors


@dataclasses.dataclass(frozen=True)
class Group(RecordBase):
    """A group (one line of /etc/group): name:passwd:gid:member,member"""

    database: ClassVar[str] = "group"
    entity: ClassVar[str] = "group"
    min_fields: ClassVar[int] = 4
    text_fields = ("name", "passwd")
    int_fields = ("gid",)
    list_fields = ("members",)

    name: str
    passwd: str = "x"
    gid: Optional[int] = None
    members: Iterable[str] = ()
    _numerals: Dict[str, str] = _numerals_field()

    def __post_init__(self) -> None:
        self._freeze_list("members")

    @classmethod
    def _from_fields(cls, parts: List[str], strict: bool) -> Group:
        return cls(
            name=parts[0],
            passwd=parts[1],
            gid=_parse_int("gid", parts[2], strict),
            members=split_list(parts[3]),
        )._keep_numerals(gid=parts[2])

    def to_entry(self) -> str:
        return join_fields(
            [
                self.name,
                self.passwd,
                self._format_int("gid", self.gid),
                join_list(self.members),
            ]
        )

    def validate(self) -> List[str]:
        errors = super().validate()
        if self.gid is None:
            errors.append(f"group {self.name!r}: gid is required")
        elif is_int(self.gid) and self.gid < 0:
            errors.append(f"group {self.name!r}: gid must not be negative")
        return errors


@dataclasses.dataclass(frozen=True)
class Shadow(RecordBase):
    """A shadow password entry (one line of /etc/shadow)

    name:passwd:last_change:min:max:warn:inactive:expire:reserved

    Dates are days since the epoch. Every numeric column may be empty,
    which is kept distinct from zero.
    """

    database: ClassVar[str] = "shadow"
    entity: ClassVar[str] = "shadow entry"
    min_fields: ClassVar[int] = 9
    text_fields = ("name", "passwd", "reserved")
    int_fields = (
        "last_change",
        "min_days",
        "max_days",
        "warn_days",
        "inactive_days",
        "expire_date",
    )

    name: str
    passwd: str = "*"
    last_change: Optional[int] = None
    min_days: Optional[int] = None
    max_days: Optional[int] = None
    warn_days: Optional[int] = None
    inactive_days: Optional[int] = None
    expire_date: Optional[int] = None
    reserved: str = ""
    _numerals: Dict[str, str] = _numerals_field()

    @classmethod
    def _from_fields(cls, parts: List[str], strict: bool) -> Shadow:
        texts = dict(zip(cls.int_fields, parts[2:8]))
        ints = {f: _parse_int(f, text, strict) for f, text in texts.items()}
        return cls(
            name=parts[0],
            passwd=parts[1],
            reserved=parts[8],
            **ints,
        )._keep_numerals(**texts)

    def to_entry(self) -> str:
        return join_fields(
            [self.name, self.passwd]
            + [self._format_int(f, getattr(self, f)) for f in self.int_fields]
            + [self.reserved]
        )

    @property
    def locked(self) -> bool:
        return self.passwd.startswith("!") or self.passwd == "*"

    def expired(self, today: Optional[int] = None) -> Optional[bool]:
        """Is the password past its maximum age?

        Returns None when the entry does not say (no last change or no
        maximum age).
        """
        if self.last_change is None or self.max_days is None:
            return None
        if self.max_days == NEVER_EXPIRES:
            return False
        if today is None:
            today = int(time.time()) // 86400
        return self.last_change + self.max_days < today


@dataclasses.dataclass(frozen=True)
class GShadow(RecordBase):
    """A group shadow entry (one line of /etc/gshadow): name:passwd:admins:members"""

    database: ClassVar[str] = "gshadow"
    entity: ClassVar[str] = "gshadow entry"
    min_fields: ClassVar[int] = 4
    text_fields = ("name", "passwd")
    list_fields = ("admins", "members")

    name: str
    passwd: str = "!"
    admins: Iterable[str] = ()
    members: Iterable[str] = ()

    def __post_init__(self) -> None:
        self._freeze_list("admins")
        self._freeze_list("members")

    @classmethod
    def _from_fields(cls, parts: List[str], strict: bool) -> GShadow:
        return cls(
            name=parts[0],
            passwd=parts[1],
            admins=split_list(parts[2]),
            members=split_list(parts[3]),
        )

    def to_entry(self) -> str:
        return join_fields(
            [
                self.name,
                self.passwd,
                join_list(self.admins),
                join_list(self.members),
            ]
        )

    @property
    def locked(self) -> bool:
        return self.passwd.startswith("!") or self.passwd == "*"


Record = Union[User, Group, Shadow, GShadow]

RECORD_TYPES: Dict[str, Type[Any]] = {
    cls.database: cls for cls in (User, Group, Shadow, GShadow)
}


def record_type(database: str) -> Type[Any]:
    """Get the record class for a database name (passwd, group, shadow, gshadow)"""
    try:
        return RECORD_TYPES[database]
    except KeyError:
        raise ValueError(f"Unknown database: {database!r}") from None


def iter_records(
    lines: Iterable[str],
    cls: Type[_R],
    strict: bool = True,
) -> Iterator[_R]:
    """Parse every record-bearing line, skipping blanks and comments"""
    for line in lines:
        if is_skippable(line):
            continue
        yield cls.parse(line, strict=strict)


def parse_file(
    path: Union[str, Path],
    cls: Type[_R],
    strict: bool = True,
) -> List[_R]:
    with open(path, "r", encoding=FILE_ENCODING, errors=FILE_ERRORS) as f:
        return list(iter_records(f, cls, strict=strict))
