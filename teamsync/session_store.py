"""In-memory store of organizer workspaces.

Maps UUID session IDs to workspaces so that the roster, the running draw
and the current partition survive between API calls. Nothing is
persisted: restarting the process starts every organizer from scratch.
"""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from teamsync.draw_engine import DrawEngine
from teamsync.models import Group, Participant

logger = logging.getLogger(__name__)

# Sessions idle for longer than this are considered expired and will be
# removed during periodic cleanup.
SESSION_TTL = timedelta(hours=2)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------


class SessionStoreError(Exception):
    """Base exception for session-store-related errors."""


class SessionNotFoundError(SessionStoreError):
    """Raised when a session ID is not found or has expired.

    Create a new session to start over.
    """


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Workspace:
    """One organizer's roster, draw engine and current partition.

    The roster is owned here; the draw engine receives a snapshot of it
    every time it changes, and groups are discarded whenever the roster
    changes.

    Attributes:
        draw: Draw engine bound to the current roster.
        groups: Most recently generated partition, possibly renamed.
    """

    draw: DrawEngine = field(default_factory=DrawEngine)
    groups: list[Group] = field(default_factory=list)
    _roster: list[Participant] = field(default_factory=list)

    @property
    def roster(self) -> list[Participant]:
        return list(self._roster)

    def replace_roster(self, roster: Sequence[Participant]) -> None:
        """Install a new roster, resetting draw state and groups if it changed."""
        new_roster = list(roster)
        if [p.id for p in new_roster] != [p.id for p in self._roster]:
            self.groups = []
        self._roster = new_roster
        self.draw.set_roster(new_roster)


@dataclass(slots=True)
class _SessionEntry:
    """Internal record pairing a workspace with timestamps.

    Attributes:
        workspace: The organizer's workspace.
        created_at: UTC timestamp when the session was created.
        last_used: UTC timestamp of the most recent access.
    """

    workspace: Workspace
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_used: datetime = field(default_factory=lambda: datetime.now(UTC))


# ---------------------------------------------------------------------------
# SessionStore
# ---------------------------------------------------------------------------


class SessionStore:
    """In-memory store for organizer workspaces.

    Each session is keyed by a UUID4 string. All access happens on the
    event loop thread, so no locking is needed.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, _SessionEntry] = {}

    # -- internal helpers ----------------------------------------------------

    @staticmethod
    def _discard(entry: _SessionEntry) -> None:
        # Stop any spinning draw so no ticker outlives its workspace.
        entry.workspace.draw.reset_session()

    def _get_valid_entry(self, session_id: str) -> _SessionEntry:
        """Look up a session and verify it hasn't expired.

        Updates ``last_used`` on success.

        Raises:
            SessionNotFoundError: If the session does not exist or has expired.
        """
        entry = self._sessions.get(session_id)
        if entry is None:
            raise SessionNotFoundError("Session not found or has expired. Please start a new session.")

        now = datetime.now(UTC)
        if now - entry.last_used > SESSION_TTL:
            self._sessions.pop(session_id, None)
            self._discard(entry)
            logger.info("Session %s expired, removing", session_id)
            raise SessionNotFoundError("Session has expired. Please start a new session.")

        entry.last_used = now
        return entry

    # -- public API ----------------------------------------------------------

    def create(self) -> str:
        """Create an empty workspace and return its session ID."""
        session_id = str(uuid.uuid4())
        self._sessions[session_id] = _SessionEntry(workspace=Workspace())
        logger.info("Session %s created", session_id)
        return session_id

    def get(self, session_id: str) -> Workspace:
        """Retrieve the workspace for ``session_id``.

        Raises:
            SessionNotFoundError: If the session ID does not exist or has expired.
        """
        return self._get_valid_entry(session_id).workspace

    def remove(self, session_id: str) -> None:
        """Remove a session and stop its draw.

        Silently ignores unknown session IDs so that removal is idempotent.
        """
        removed = self._sessions.pop(session_id, None)
        if removed is not None:
            self._discard(removed)
            logger.info("Session %s removed", session_id)
        else:
            logger.debug("Attempted to remove unknown session %s", session_id)

    def cleanup_expired(self) -> None:
        """Remove all sessions idle for longer than the TTL.

        Intended to be called periodically from a background task to
        prevent unbounded memory growth.
        """
        now = datetime.now(UTC)
        expired_ids = [sid for sid, entry in self._sessions.items() if now - entry.last_used > SESSION_TTL]

        for sid in expired_ids:
            entry = self._sessions.pop(sid, None)
            if entry is not None:
                self._discard(entry)

        if expired_ids:
            logger.info(
                "Cleaned up %d expired session(s): %s",
                len(expired_ids),
                expired_ids,
            )


# Module-level singleton used across the application.
session_store = SessionStore()
