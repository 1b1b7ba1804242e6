from __future__ import annotations
import dataclasses
from typing import Dict, Iterable, List

from .records import Record
from .utils import iter_entry_lines, line_key

ADDED = "added"
MODIFIED = "modified"
REMOVED = "removed"


@dataclasses.dataclass(frozen=True)
class Change:
    type: str
    name: str

    def __str__(self) -> str:
        return f"{self.type}: {self.name}"


def current_entries(lines: Iterable[str]) -> Dict[str, str]:
    """Map each key of an existing database to its line

    Blank and comment lines are skipped. When a key repeats, the first line
    wins, matching lookup precedence.
    """
    current: Dict[str, str] = {}
    for line in iter_entry_lines(lines):
        current.setdefault(line_key(line), line)
    return current


def render_entries(records: Iterable[Record]) -> Dict[str, str]:
    """Map each key of a proposed record set to its rendered line"""
    return {r.name: r.to_entry() for r in records}


def calculate_changes(
    current_lines: Iterable[str],
    proposed: Iterable[Record],
) -> List[Change]:
    """Compute what replacing a database with proposed would change

    The result lists additions and modifications in proposed order, then
    removals in file order. Records whose rendered line is identical to the
    existing line produce no entry. The ordering is meant for display only.
    """
    current = current_entries(current_lines)
    new = render_entries(proposed)

    changes = []
    for name, line in new.items():
        old = current.get(name)
        if old is None:
            changes.append(Change(ADDED, name))
        elif old != line:
            changes.append(Change(MODIFIED, name))

    for name in current:
        if name not in new:
            changes.append(Change(REMOVED, name))

    return changes
