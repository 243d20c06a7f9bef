"""
Tests — revision numbering rules.

Covers:
    - first revision of a group must be 1
    - next number is max(group) + 1, groups are independent
    - duplicate vs non-sequential outcomes (with the expected number)
    - edits keeping group and number are always accepted
    - moving an edited revision into another group
    - batch shadow catches duplicates inside one batch
"""

import pytest

from revtrack.core.exceptions import DuplicateRevisionNumber, NonSequentialRevisionNumber
from revtrack.core.records import RevisionRecord
from revtrack.core.sequence import (
    SequenceError,
    SequenceShadow,
    ensure_valid_sequence,
    group_key,
    next_revision_number,
    validate_sequence,
)

GROUP_A = (1, 1, 1, 1)
GROUP_B = (1, 2, 1, 1)


def _rev(rev_id, number, group=GROUP_A):
    venture, work, discipline, designer = group
    return RevisionRecord(
        id=rev_id,
        venture_id=venture,
        work_id=work,
        discipline_id=discipline,
        designer_id=designer,
        revision_number=number,
    )


# ═════════════════════════════════════════════════════════════════════════════
# Next number
# ═════════════════════════════════════════════════════════════════════════════

class TestNextNumber:
    def test_empty_group_starts_at_one(self):
        assert next_revision_number([], GROUP_A) == 1

    def test_max_plus_one(self):
        existing = [_rev(1, 1), _rev(2, 2), _rev(3, 1, GROUP_B)]
        assert next_revision_number(existing, GROUP_A) == 3
        assert next_revision_number(existing, GROUP_B) == 2

    def test_group_key(self):
        assert group_key(_rev(1, 1, GROUP_B)) == GROUP_B


# ═════════════════════════════════════════════════════════════════════════════
# Validation
# ═════════════════════════════════════════════════════════════════════════════

class TestValidate:
    def test_first_revision_must_be_one(self):
        outcome = validate_sequence([], _rev(None, 2))
        assert not outcome.accepted
        assert outcome.error is SequenceError.NON_SEQUENTIAL
        assert outcome.expected == 1

    def test_accepts_next_number(self):
        assert validate_sequence([_rev(1, 1)], _rev(None, 2)).accepted

    def test_duplicate(self):
        outcome = validate_sequence([_rev(1, 1), _rev(2, 2)], _rev(None, 2))
        assert outcome.error is SequenceError.DUPLICATE

    def test_gap_reports_expected(self):
        outcome = validate_sequence([_rev(1, 1), _rev(2, 2)], _rev(None, 5))
        assert outcome.error is SequenceError.NON_SEQUENTIAL
        assert outcome.expected == 3

    def test_other_group_does_not_interfere(self):
        assert validate_sequence([_rev(1, 1), _rev(2, 2)], _rev(None, 1, GROUP_B)).accepted

    def test_unchanged_edit_is_accepted(self):
        existing = [_rev(1, 1), _rev(2, 2), _rev(3, 3)]
        assert validate_sequence(existing, _rev(1, 1), exclude_id=1).accepted

    def test_renumbering_edit_is_checked(self):
        existing = [_rev(1, 1), _rev(2, 2)]
        outcome = validate_sequence(existing, _rev(1, 2), exclude_id=1)
        assert outcome.error is SequenceError.DUPLICATE

    def test_move_to_other_group_takes_its_next_number(self):
        existing = [_rev(1, 1), _rev(2, 2), _rev(3, 1, GROUP_B)]
        assert validate_sequence(existing, _rev(2, 2, GROUP_B), exclude_id=2).accepted
        outcome = validate_sequence(existing, _rev(2, 3, GROUP_B), exclude_id=2)
        assert outcome.expected == 2

    def test_ensure_raises_typed_errors(self):
        with pytest.raises(DuplicateRevisionNumber):
            ensure_valid_sequence([_rev(1, 1)], _rev(None, 1))
        with pytest.raises(NonSequentialRevisionNumber) as exc:
            ensure_valid_sequence([_rev(1, 1)], _rev(None, 4))
        assert exc.value.expected == 2

    def test_input_is_not_modified(self):
        existing = [_rev(1, 1)]
        validate_sequence(existing, _rev(None, 2))
        assert existing == [_rev(1, 1)]


# ═════════════════════════════════════════════════════════════════════════════
# Batch shadow
# ═════════════════════════════════════════════════════════════════════════════

class TestShadow:
    def test_duplicate_inside_batch(self):
        shadow = SequenceShadow([_rev(1, 1)])
        first = _rev(None, 2)
        assert shadow.validate(first).accepted
        shadow.accept(first)
        assert shadow.validate(_rev(None, 2)).error is SequenceError.DUPLICATE
        assert shadow.next_number(GROUP_A) == 3

    def test_edit_replaces_stored_record(self):
        shadow = SequenceShadow([_rev(1, 1), _rev(2, 2)])
        shadow.accept(_rev(2, 1, GROUP_B))
        assert len(shadow.records) == 2
        assert shadow.next_number(GROUP_A) == 2
        assert shadow.next_number(GROUP_B) == 2

    def test_source_collection_untouched(self):
        existing = [_rev(1, 1)]
        shadow = SequenceShadow(existing)
        shadow.accept(_rev(None, 2))
        assert existing == [_rev(1, 1)]
