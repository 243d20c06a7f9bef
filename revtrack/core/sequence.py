"""
Revision numbering rules.

Within a group (venture, work, discipline, designer) revision numbers are
unique and form a contiguous run starting at 1: a new number must be
``max(group) + 1``, or 1 for an empty group. Re-saving a revision without
changing its group or number is always accepted.

The check is total and side-effect free. Batch callers pass a shadow
collection that already contains the batch's earlier accepted candidates so
duplicates inside one batch are caught too (see ``SequenceShadow``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from revtrack.core.exceptions import DuplicateRevisionNumber, NonSequentialRevisionNumber
from revtrack.core.records import GROUP_FIELDS, RevisionRecord

FIRST_REVISION_NUMBER = 1


class SequenceError(str, Enum):
    DUPLICATE = "duplicate_revision_number"
    NON_SEQUENTIAL = "non_sequential_revision_number"


@dataclass(frozen=True)
class SequenceOutcome:
    """Result of ``validate_sequence``; ``expected`` is set for non-sequential numbers."""
    accepted: bool
    error: SequenceError | None = None
    expected: int | None = None

    def raise_for_error(self, revision_number: int) -> None:
        if self.error is SequenceError.DUPLICATE:
            raise DuplicateRevisionNumber(revision_number)
        if self.error is SequenceError.NON_SEQUENTIAL:
            raise NonSequentialRevisionNumber(revision_number, self.expected)


ACCEPTED = SequenceOutcome(accepted=True)


def group_key(record) -> tuple:
    """Partition key of a revision: its four foreign keys."""
    return tuple(getattr(record, f) for f in GROUP_FIELDS)


def group_members(existing: Iterable[RevisionRecord], key: tuple, exclude_id=None) -> list[RevisionRecord]:
    return [
        r for r in existing
        if group_key(r) == key and (exclude_id is None or r.id != exclude_id)
    ]


def next_revision_number(existing: Iterable[RevisionRecord], key: tuple, exclude_id=None) -> int:
    """The only number a new revision of group ``key`` may take."""
    numbers = [
        r.revision_number for r in group_members(existing, key, exclude_id)
        if r.revision_number is not None
    ]
    return max(numbers, default=FIRST_REVISION_NUMBER - 1) + 1


def validate_sequence(
    existing: Iterable[RevisionRecord],
    candidate: RevisionRecord,
    exclude_id=None,
) -> SequenceOutcome:
    existing = list(existing)
    key = group_key(candidate)
    number = candidate.revision_number

    if exclude_id is not None:
        stored = next((r for r in existing if r.id == exclude_id), None)
        if stored is not None and stored.revision_number == number and group_key(stored) == key:
            return ACCEPTED

    group = group_members(existing, key, exclude_id)
    if any(r.revision_number == number for r in group):
        return SequenceOutcome(accepted=False, error=SequenceError.DUPLICATE)

    expected = next_revision_number(group, key)
    if number != expected:
        return SequenceOutcome(accepted=False, error=SequenceError.NON_SEQUENTIAL, expected=expected)
    return ACCEPTED


def ensure_valid_sequence(existing, candidate: RevisionRecord, exclude_id=None) -> None:
    """Raise ``DuplicateRevisionNumber`` / ``NonSequentialRevisionNumber`` on failure."""
    validate_sequence(existing, candidate, exclude_id).raise_for_error(candidate.revision_number)


class SequenceShadow:
    """Working copy of a collection for validating a batch candidate by candidate.

    ``accept`` folds an accepted candidate into the copy, replacing the stored
    revision with the same id when the candidate is an edit. The input
    collection is never modified.
    """

    def __init__(self, existing: Iterable[RevisionRecord]):
        self._records = list(existing)

    @property
    def records(self) -> tuple[RevisionRecord, ...]:
        return tuple(self._records)

    def validate(self, candidate: RevisionRecord, exclude_id=None) -> SequenceOutcome:
        return validate_sequence(self._records, candidate, exclude_id)

    def next_number(self, key: tuple) -> int:
        return next_revision_number(self._records, key)

    def accept(self, candidate: RevisionRecord) -> None:
        if candidate.id is not None:
            self._records = [r for r in self._records if r.id != candidate.id]
        self._records.append(candidate)
