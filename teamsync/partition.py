"""Random team partitioning.

Shuffles the roster, cuts it into groups of the requested size, and folds
an undersized trailing group back into the others so that nobody ends up
in a near-empty team.
"""

import csv
import io
import logging
import random
from collections.abc import Sequence

from teamsync.models import Group, Participant
from teamsync.randomness import chunked, shuffled

logger = logging.getLogger(__name__)

CSV_HEADER = ("Group Name", "Member Name")


class PartitionError(Exception):
    """Base exception for partition-related errors."""


class InvalidGroupSizeError(PartitionError):
    """Raised when the requested group size is not a positive integer.

    Choose a group size of at least 1.
    """


def merge_remainder(chunks: list[list[Participant]], group_size: int) -> list[list[Participant]]:
    """Fold a small trailing chunk into the preceding ones.

    When there is more than one chunk and the last holds at most half of
    ``group_size`` members (true division, so a target of 5 merges a
    remainder of 1 or 2 but not 3), the last chunk is removed and its
    members are dealt round-robin into the remaining chunks, starting
    from the first.

    Args:
        chunks: Consecutive chunks as produced by :func:`chunked`. Modified
            in place.
        group_size: The target group size used to cut the chunks.

    Returns:
        The same ``chunks`` list, for convenience.
    """
    if len(chunks) > 1 and len(chunks[-1]) <= group_size / 2:
        leftover = chunks.pop()
        for index, member in enumerate(leftover):
            chunks[index % len(chunks)].append(member)
        logger.debug("Merged %d leftover member(s) into %d group(s)", len(leftover), len(chunks))
    return chunks


def generate_groups(
    roster: Sequence[Participant],
    group_size: int,
    rng: random.Random | None = None,
) -> list[Group]:
    """Partition ``roster`` into randomly composed groups of about ``group_size``.

    Every participant lands in exactly one group. Groups are numbered in
    order: ids ``group-0``, ``group-1``, ... and default names
    ``Group 1``, ``Group 2``, ...

    Args:
        roster: The participants to partition.
        group_size: Target number of members per group.
        rng: Optional random source for the shuffle.

    Returns:
        The new groups, or an empty list for an empty roster.

    Raises:
        InvalidGroupSizeError: If ``group_size`` is not an integer >= 1.
    """
    if isinstance(group_size, bool) or not isinstance(group_size, int) or group_size < 1:
        raise InvalidGroupSizeError(f"Group size must be a positive integer, got {group_size!r}.")

    if not roster:
        return []

    chunks = merge_remainder(chunked(shuffled(roster, rng), group_size), group_size)
    groups = [Group(id=f"group-{index}", name=f"Group {index + 1}", members=members) for index, members in enumerate(chunks)]

    logger.info(
        "Generated %d group(s) from %d participant(s) with target size %d",
        len(groups),
        len(roster),
        group_size,
    )
    return groups


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def export_rows(groups: Sequence[Group]) -> list[tuple[str, str]]:
    """Flatten groups into ``(group_name, member_name)`` rows.

    Rows are contiguous per group, in group order then member order.
    """
    return [(group.name, member.name) for group in groups for member in group.members]


def export_csv(groups: Sequence[Group]) -> str:
    """Render groups as CSV text with a ``Group Name,Member Name`` header."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(export_rows(groups))
    return buffer.getvalue()
