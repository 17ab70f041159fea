"""Tests for teamsync.roster module."""

import re
from unittest.mock import patch

from teamsync.models import Participant
from teamsync.roster import (
    SAMPLE_NAMES,
    find_duplicate_ids,
    generate_id,
    parse_roster,
    remove_duplicates,
    remove_participant,
    sample_roster,
)

# ---------------------------------------------------------------------------
# generate_id / parse_roster
# ---------------------------------------------------------------------------


class TestGenerateId:
    """Tests for the generate_id function."""

    def test_format(self) -> None:
        """Produce seven lowercase base-36 characters."""
        assert re.fullmatch(r"[0-9a-z]{7}", generate_id())


class TestParseRoster:
    """Tests for the parse_roster function."""

    def test_empty_text(self) -> None:
        """Return no participants for empty input."""
        assert parse_roster("") == []

    def test_trims_and_skips_blank_lines(self) -> None:
        """Trim names and drop whitespace-only lines."""
        roster = parse_roster("  Alice \n\n   \nBob\n")
        assert [p.name for p in roster] == ["Alice", "Bob"]

    def test_windows_line_endings(self) -> None:
        """Split on CRLF as well as LF."""
        roster = parse_roster("Alice\r\nBob\r\nCharlie")
        assert [p.name for p in roster] == ["Alice", "Bob", "Charlie"]

    def test_splits_only_on_newlines(self) -> None:
        """Keep form feeds and Unicode line separators inside a name."""
        roster = parse_roster("Ann\u2028Lee\nBo\x0cKim\r\nCy\x1eDee")
        assert [p.name for p in roster] == ["Ann\u2028Lee", "Bo\x0cKim", "Cy\x1eDee"]

    def test_strips_commas(self) -> None:
        """Remove commas so a single-column CSV pastes cleanly."""
        roster = parse_roster("Doe, Jane\nSmith,,")
        assert [p.name for p in roster] == ["Doe Jane", "Smith"]

    def test_ids_are_unique(self) -> None:
        """Give every parsed participant a distinct id."""
        roster = parse_roster("\n".join(f"Person {i}" for i in range(200)))
        assert len({p.id for p in roster}) == 200

    def test_avoids_existing_ids(self) -> None:
        """Regenerate ids that clash with the existing roster."""
        with patch("teamsync.roster.generate_id", side_effect=["taken00", "fresh01"]):
            roster = parse_roster("Alice", existing_ids={"taken00"})
        assert roster[0].id == "fresh01"

    def test_keeps_duplicate_names(self) -> None:
        """Keep repeated names as separate participants."""
        roster = parse_roster("Alice\nAlice")
        assert len(roster) == 2
        assert roster[0].id != roster[1].id


class TestSampleRoster:
    """Tests for the built-in sample roster."""

    def test_contains_every_sample_name(self) -> None:
        """Produce one participant per sample name, in order."""
        assert [p.name for p in sample_roster()] == list(SAMPLE_NAMES)


# ---------------------------------------------------------------------------
# Duplicates
# ---------------------------------------------------------------------------


class TestFindDuplicateIds:
    """Tests for the find_duplicate_ids function."""

    def test_no_duplicates(self) -> None:
        """Return an empty set for distinct names."""
        roster = [Participant(id="1", name="Ann"), Participant(id="2", name="Bo")]
        assert find_duplicate_ids(roster) == set()

    def test_case_insensitive(self, sample_roster: list[Participant]) -> None:
        """Flag every member of a case-insensitive collision."""
        assert find_duplicate_ids(sample_roster) == {"a1", "e5"}

    def test_ignores_surrounding_whitespace(self) -> None:
        """Compare names after trimming."""
        roster = [Participant(id="1", name="Ann "), Participant(id="2", name=" ann")]
        assert find_duplicate_ids(roster) == {"1", "2"}


class TestRemoveDuplicates:
    """Tests for the remove_duplicates function."""

    def test_keeps_first_occurrence(self, sample_roster: list[Participant]) -> None:
        """Drop later same-named participants and keep the order."""
        result = remove_duplicates(sample_roster)
        assert [p.id for p in result] == ["a1", "b2", "c3", "d4"]

    def test_no_change_without_duplicates(self) -> None:
        """Return an equal roster when every name is distinct."""
        roster = [Participant(id="1", name="Ann"), Participant(id="2", name="Bo")]
        assert remove_duplicates(roster) == roster


class TestRemoveParticipant:
    """Tests for the remove_participant function."""

    def test_removes_by_id(self, sample_roster: list[Participant]) -> None:
        """Remove only the participant with the given id."""
        result = remove_participant(sample_roster, "a1")
        assert [p.id for p in result] == ["b2", "c3", "d4", "e5"]

    def test_unknown_id(self, sample_roster: list[Participant]) -> None:
        """Leave the roster unchanged for an unknown id."""
        assert remove_participant(sample_roster, "zz") == sample_roster
