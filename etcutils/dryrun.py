from __future__ import annotations
import dataclasses
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .changeset import ADDED, MODIFIED, REMOVED, Change


@dataclasses.dataclass(frozen=True)
class DryRunResult:
    """What a write would have done

    Returned by a write performed with dry_run=True: the content that would
    have been written, the changes relative to the current file, and any
    validation problems found.
    """

    content: str
    path: Path
    changes: Tuple[Change, ...] = ()
    warnings: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "changes", tuple(self.changes))
        object.__setattr__(self, "warnings", tuple(self.warnings))
        object.__setattr__(self, "errors", tuple(self.errors))

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def entry_count(self) -> int:
        return int(self.metadata.get("entry_count", 0))

    def change_summary(self) -> Dict[str, int]:
        return {
            t: sum(1 for c in self.changes if c.type == t)
            for t in (ADDED, MODIFIED, REMOVED)
        }

    def summary(self) -> str:
        status = "VALID" if self.valid else "INVALID"
        counts = self.change_summary()
        parts = [
            f"[{status}] Would write {self.entry_count} entries to {self.path}",
            f"Changes: {counts[ADDED]} added, {counts[MODIFIED]} modified,"
            f" {counts[REMOVED]} removed",
        ]
        if self.has_warnings:
            parts.append(f"Warnings: {len(self.warnings)}")
        if not self.valid:
            parts.append(f"Errors: {len(self.errors)}")
        return "\n".join(parts)

    def preview(self, limit: Optional[int] = None) -> str:
        """Get the content with 1-based line numbers, optionally truncated"""
        lines = self.content.splitlines(keepends=True)
        if limit is not None:
            lines = lines[:limit]
        return "".join(f"{i}: {line}" for i, line in enumerate(lines, 1))

    def to_dict(self) -> Dict[str, Any]:
        return dict(
            path=str(self.path),
            valid=self.valid,
            entry_count=self.entry_count,
            changes=[dataclasses.asdict(c) for c in self.changes],
            warnings=list(self.warnings),
            errors=list(self.errors),
            metadata=dict(self.metadata),
        )

    def __str__(self) -> str:
        return self.summary()
