from __future__ import annotations
from typing import TYPE_CHECKING, Callable, Generic, Iterator, List, Optional, TypeVar
from typing import Union

from .constants import MAX_ID
from .errors import NotFoundError
from .records import GShadow, Group, Shadow, User

if TYPE_CHECKING:
    from .backends import Backend

_R = TypeVar("_R", User, Group, Shadow, GShadow)
Identifier = Union[str, int]
Predicate = Callable[[_R], bool]


class RecordCollection(Generic[_R]):
    """Query interface over one kind of record served by a backend

    Iterating re-reads the backend every time.
    """

    entity = "record"

    def __init__(self, backend: Backend):
        self.backend = backend

    def __iter__(self) -> Iterator[_R]:
        return self._each()

    def _each(self) -> Iterator[_R]:
        raise NotImplementedError

    def _find(self, identifier: Identifier) -> Optional[_R]:
        raise NotImplementedError

    def get(
        self,
        identifier: Optional[Identifier] = None,
        predicate: Optional[Predicate] = None,
    ) -> Optional[_R]:
        """Find a record by name, by numeric id, or by predicate

        Returns None if nothing matches.
        """
        if predicate is not None:
            return next((r for r in self if predicate(r)), None)
        if identifier is None:
            raise ValueError("get requires an identifier or a predicate")
        return self._find(identifier)

    def fetch(
        self,
        identifier: Optional[Identifier] = None,
        predicate: Optional[Predicate] = None,
    ) -> _R:
        """Like get(), but raises NotFoundError if nothing matches"""
        result = self.get(identifier, predicate)
        if result is None:
            if predicate is not None:
                raise NotFoundError(
                    f"No {self.entity} matching predicate", entity_type=self.entity
                )
            raise NotFoundError(entity_type=self.entity, identifier=identifier)
        return result

    def __getitem__(self, identifier: Identifier) -> Optional[_R]:
        return self.get(identifier)

    def exists(self, identifier: Identifier) -> bool:
        return self.get(identifier) is not None

    def __contains__(self, identifier: object) -> bool:
        if not isinstance(identifier, (str, int)):
            return False
        return self.exists(identifier)

    def to_list(self) -> List[_R]:
        return list(self)

    def count(self) -> int:
        """Count the records (reads the whole database)"""
        return sum(1 for _ in self)


def _next_id(used: Iterator[Optional[int]], start: int, label: str) -> int:
    if not 0 <= start <= MAX_ID:
        raise ValueError(f"{label} must be between 0 and {MAX_ID}")

    taken = set(used)
    candidate = start
    while candidate in taken:
        candidate += 1
    if candidate > MAX_ID:
        raise ValueError(f"No free {label} at or above {start}")
    return candidate


class UserCollection(RecordCollection[User]):
    entity = "user"

    def _each(self) -> Iterator[User]:
        return self.backend.each_user()

    def _find(self, identifier: Identifier) -> Optional[User]:
        return self.backend.find_user(identifier)

    def next_uid(self, start: int = 0) -> int:
        """Get the lowest unassigned uid at or above start"""
        return _next_id((u.uid for u in self), start, "UID")


class GroupCollection(RecordCollection[Group]):
    entity = "group"

    def _each(self) -> Iterator[Group]:
        return self.backend.each_group()

    def _find(self, identifier: Identifier) -> Optional[Group]:
        return self.backend.find_group(identifier)

    def next_gid(self, start: int = 0) -> int:
        """Get the lowest unassigned gid at or above start"""
        return _next_id((g.gid for g in self), start, "GID")


class ShadowCollection(RecordCollection[Shadow]):
    entity = "shadow entry"

    def _each(self) -> Iterator[Shadow]:
        return self.backend.each_shadow()

    def _find(self, identifier: Identifier) -> Optional[Shadow]:
        return self.backend.find_shadow(str(identifier))


class GShadowCollection(RecordCollection[GShadow]):
    entity = "gshadow entry"

    def _each(self) -> Iterator[GShadow]:
        return self.backend.each_gshadow()

    def _find(self, identifier: Identifier) -> Optional[GShadow]:
        return self.backend.find_gshadow(str(identifier))
