"""Roster ingestion helpers.

Turns pasted text or uploaded file contents into participants, and
detects or removes participants whose names collide.
"""

import logging
import random
import re
import string
from collections import Counter
from collections.abc import Sequence

from teamsync.models import Participant

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_LENGTH = 7

# Only LF and CRLF separate names; other Unicode line boundaries stay in the name.
_LINE_BREAK = re.compile(r"\r?\n")

SAMPLE_NAMES = (
    "Emma Thompson",
    "Liam Wilson",
    "Olivia Davis",
    "Noah Martinez",
    "Ava Taylor",
    "William Anderson",
    "Sophia Thomas",
    "James Jackson",
    "Isabella White",
    "Oliver Harris",
    "Mia Martin",
    "Benjamin Thompson",
    "Charlotte Garcia",
    "Elijah Martinez",
    "Amelia Robinson",
    "Lucas Clark",
    "Harper Rodriguez",
    "Mason Lewis",
    "Evelyn Lee",
    "Logan Walker",
    "Alexander Hall",
    "Abigail Allen",
    "Henry Young",
    "Emily King",
)


def generate_id() -> str:
    """Return a short random base-36 identifier."""
    return "".join(random.choices(_ID_ALPHABET, k=_ID_LENGTH))


def _normalize(name: str) -> str:
    return name.strip().lower()


def parse_roster(text: str, existing_ids: set[str] | None = None) -> list[Participant]:
    """Parse newline-separated names into participants.

    Each line is trimmed, blank lines are dropped, and commas are removed
    so that a single-column CSV pastes cleanly. Every participant gets a
    fresh id that does not clash with ``existing_ids``.

    Args:
        text: Raw text, one name per line (``\\n`` or ``\\r\\n``).
        existing_ids: Ids already present in the roster being extended.

    Returns:
        The parsed participants in input order.
    """
    taken = set(existing_ids or ())
    participants = []
    for line in _LINE_BREAK.split(text):
        name = line.strip().replace(",", "")
        if not name:
            continue
        participant_id = generate_id()
        while participant_id in taken:
            participant_id = generate_id()
        taken.add(participant_id)
        participants.append(Participant(id=participant_id, name=name))

    logger.debug("Parsed %d participant(s) from input text", len(participants))
    return participants


def sample_roster(existing_ids: set[str] | None = None) -> list[Participant]:
    """Return participants for the built-in sample names."""
    return parse_roster("\n".join(SAMPLE_NAMES), existing_ids)


def find_duplicate_ids(roster: Sequence[Participant]) -> set[str]:
    """Return the ids of every participant whose name occurs more than once.

    Names are compared case-insensitively after trimming. All members of a
    colliding set are flagged, including the first occurrence.
    """
    counts = Counter(_normalize(p.name) for p in roster)
    return {p.id for p in roster if counts[_normalize(p.name)] > 1}


def remove_duplicates(roster: Sequence[Participant]) -> list[Participant]:
    """Keep only the first participant for each case-insensitive name."""
    seen: set[str] = set()
    unique = []
    for participant in roster:
        key = _normalize(participant.name)
        if key in seen:
            continue
        seen.add(key)
        unique.append(participant)

    removed = len(roster) - len(unique)
    if removed:
        logger.info("Removed %d duplicate participant(s)", removed)
    return unique


def remove_participant(roster: Sequence[Participant], participant_id: str) -> list[Participant]:
    """Return ``roster`` without the participant identified by ``participant_id``."""
    return [p for p in roster if p.id != participant_id]
