"""Pydantic models for domain entities and request/response types used by the TeamSync API."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Domain entities
# ---------------------------------------------------------------------------


class Participant(BaseModel):
    """A single named entry on the roster.

    Identity is carried by ``id``; two participants may share a name.
    Instances are frozen so that draw history and groups can hold
    references to them without risk of mutation.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque identifier assigned at ingestion")
    name: str = Field(description="Display name, already trimmed")


class WinnerRecord(BaseModel):
    """A committed draw result."""

    model_config = ConfigDict(frozen=True)

    participant: Participant = Field(description="The participant who won")
    timestamp: datetime = Field(description="UTC instant the draw was committed")


class Group(BaseModel):
    """One team produced by a partition.

    ``name`` starts out as ``Group N`` and may later be replaced by an
    enriched display name; ``members`` keeps the order produced by the
    partition algorithm.
    """

    id: str = Field(description="Stable identifier of the form group-<index>")
    name: str = Field(description="Display name of the group")
    members: list[Participant] = Field(default_factory=list, description="Members in partition order")


class DrawState(StrEnum):
    """States of the draw engine."""

    IDLE = "idle"
    SPINNING = "spinning"


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class CreateSessionResponse(BaseModel):
    """Response body returned by POST /api/sessions.

    The session id addresses an in-memory workspace and must be sent
    with every subsequent request.
    """

    session_id: str = Field(description="Session ID for subsequent requests")


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------


class AddParticipantsRequest(BaseModel):
    """Request body for POST /api/sessions/{session_id}/roster.

    Carries free text with one name per line, as pasted by the
    organizer or read from an uploaded .txt/.csv file.
    """

    text: str = Field(description="Names separated by newlines")


class RosterResponse(BaseModel):
    """Current roster plus the ids flagged as duplicate names."""

    participants: list[Participant] = Field(description="Roster in ingestion order")
    duplicate_ids: list[str] = Field(
        default_factory=list,
        description="Ids of participants whose name (case-insensitive) occurs more than once",
    )


# ---------------------------------------------------------------------------
# Draw
# ---------------------------------------------------------------------------


class DrawSettingsRequest(BaseModel):
    """Request body for PUT /api/sessions/{session_id}/draw/settings."""

    allow_repeats: bool = Field(description="Whether previous winners stay in the eligible pool")


class ClearHistoryRequest(BaseModel):
    """Request body for POST /api/sessions/{session_id}/draw/clear-history.

    Clearing history is destructive, so the caller must confirm it
    explicitly.
    """

    confirm: bool = Field(default=False, description="Must be true to clear the winner history")


class WinnerView(BaseModel):
    """Flattened winner record for display or export."""

    participant_id: str = Field(description="Id of the winning participant")
    participant_name: str = Field(description="Name of the winning participant")
    timestamp: datetime = Field(description="UTC instant the draw was committed")


class DrawStatusResponse(BaseModel):
    """Snapshot of the draw engine returned by every draw endpoint."""

    state: DrawState = Field(description="Whether a draw is currently spinning")
    current_display: str = Field(description="Name currently shown (transient while spinning)")
    allow_repeats: bool = Field(description="Whether previous winners stay eligible")
    eligible_count: int = Field(ge=0, description="Size of the current eligible pool")
    error: str | None = Field(default=None, description="Last reported draw error, if any")
    history: list[WinnerView] = Field(default_factory=list, description="Winners, newest first")


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


class GenerateGroupsRequest(BaseModel):
    """Request body for POST /api/sessions/{session_id}/groups."""

    group_size: int = Field(ge=1, description="Target number of people per group")


class GroupsResponse(BaseModel):
    """The current partition, in group order."""

    groups: list[Group] = Field(description="Groups in index order")
