"""
Append-only version history.

Each phase and each sprint owns an independent VersionHistory. Entries are
numbered from 1 with no gaps; an entry is never replaced or removed once
appended.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from phaseflow.domain.exceptions import ValidationError


class VersionReason(str, Enum):
    """Why a version was appended."""

    INITIAL = "Initial generation"
    REGENERATION = "Regeneration"
    MANUAL_EDIT = "Manual edit"
    MERGE = "Merged documents from sprints"


@dataclass(frozen=True)
class VersionedOutput:
    """Immutable, sequentially numbered content snapshot."""

    version: int  # 1-indexed, contiguous within its owner
    content: str
    reason: VersionReason
    created_at: str  # ISO timestamp


class VersionHistory:
    """
    Ordered, append-only list of VersionedOutput.

    Invariant: ``self[i].version == i + 1`` for every index.
    """

    def __init__(self) -> None:
        self._entries: list[VersionedOutput] = []

    @classmethod
    def from_entries(cls, entries: Iterable[VersionedOutput]) -> "VersionHistory":
        """
        Rebuild a history from stored entries.

        Args:
            entries: Versions in stored order

        Returns:
            A history containing the entries

        Raises:
            ValidationError: If the numbering is not 1..n without gaps
        """
        history = cls()
        for expected, entry in enumerate(entries, start=1):
            if entry.version != expected:
                raise ValidationError(
                    f"Version history is not contiguous: expected {expected}, "
                    f"found {entry.version}"
                )
            history._entries.append(entry)
        return history

    def append(
        self, content: str, reason: VersionReason, created_at: str | None = None
    ) -> VersionedOutput:
        """Append a new version numbered one past the latest."""
        entry = VersionedOutput(
            version=len(self._entries) + 1,
            content=content,
            reason=reason,
            created_at=created_at or datetime.now(timezone.utc).isoformat(),
        )
        self._entries.append(entry)
        return entry

    def next_generation_reason(self) -> VersionReason:
        """Reason for the next generated version."""
        return VersionReason.REGENERATION if self._entries else VersionReason.INITIAL

    @property
    def latest(self) -> VersionedOutput | None:
        return self._entries[-1] if self._entries else None

    def get(self, version: int) -> VersionedOutput:
        """
        Get a version by number.

        Raises:
            ValidationError: If no such version exists
        """
        if not 1 <= version <= len(self._entries):
            raise ValidationError(
                f"Version {version} does not exist (have 1..{len(self._entries)})"
            )
        return self._entries[version - 1]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[VersionedOutput]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> VersionedOutput:
        return self._entries[index]

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionHistory):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"VersionHistory({len(self._entries)} versions)"
