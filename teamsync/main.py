"""FastAPI application for TeamSync, the prize draw and team builder.

Exposes API endpoints for managing a participant roster, running prize
draws with a spinning display, and splitting participants into balanced
groups that can be named and exported as CSV.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware

from teamsync.draw_engine import ConfirmationRequiredError, EmptyPoolError
from teamsync.models import (
    AddParticipantsRequest,
    ClearHistoryRequest,
    CreateSessionResponse,
    DrawSettingsRequest,
    DrawStatusResponse,
    GenerateGroupsRequest,
    GroupsResponse,
    RosterResponse,
)
from teamsync.naming import EnrichmentFailureError, LLMNameEnricher, NameEnricher, enrich_group_names
from teamsync.partition import export_csv, generate_groups
from teamsync.roster import find_duplicate_ids, parse_roster, remove_duplicates, remove_participant, sample_roster
from teamsync.session_store import SessionNotFoundError, Workspace, session_store

logger = logging.getLogger(__name__)

# Interval between expired-session cleanup sweeps.
_CLEANUP_INTERVAL_SECONDS = 300  # 5 minutes


async def _periodic_session_cleanup() -> None:
    """Run session_store.cleanup_expired() every _CLEANUP_INTERVAL_SECONDS.

    Intended to be launched as a background task during application lifespan
    so that stale workspaces do not accumulate indefinitely.
    """
    while True:
        await asyncio.sleep(_CLEANUP_INTERVAL_SECONDS)
        session_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-wide startup and shutdown resources.

    Starts a background task that periodically purges expired sessions.
    The task is cancelled automatically when the application shuts down.
    """
    cleanup_task = asyncio.create_task(_periodic_session_cleanup())
    logger.info("Started periodic session cleanup task (interval=%ds)", _CLEANUP_INTERVAL_SECONDS)
    try:
        yield
    finally:
        cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await cleanup_task
        logger.info("Stopped periodic session cleanup task")


app = FastAPI(
    title="TeamSync",
    description="Prize draw and team builder API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_name_enricher() -> NameEnricher:
    """Return the enricher used for team naming, configured from the environment."""
    return LLMNameEnricher()


def _workspace(session_id: str) -> Workspace:
    try:
        return session_store.get(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _roster_response(workspace: Workspace) -> RosterResponse:
    roster = workspace.roster
    duplicates = find_duplicate_ids(roster)
    return RosterResponse(participants=roster, duplicate_ids=[p.id for p in roster if p.id in duplicates])


# ---------------------------------------------------------------------------
# Session endpoints
# ---------------------------------------------------------------------------


@app.post("/api/sessions", response_model=CreateSessionResponse)  # type: ignore[untyped-decorator]
async def api_create_session() -> CreateSessionResponse:
    """Create an empty workspace.

    The returned session_id must be included in every subsequent request.
    """
    return CreateSessionResponse(session_id=session_store.create())


@app.delete("/api/sessions/{session_id}")  # type: ignore[untyped-decorator]
async def api_delete_session(session_id: str) -> dict[str, str]:
    """Drop a workspace.

    This endpoint is idempotent -- deleting an unknown or already-removed
    session still returns a success response.
    """
    logger.info("Delete request for session %s", session_id)
    session_store.remove(session_id)
    return {"detail": "Session removed"}


# ---------------------------------------------------------------------------
# Roster endpoints
# ---------------------------------------------------------------------------


@app.get("/api/sessions/{session_id}/roster", response_model=RosterResponse)  # type: ignore[untyped-decorator]
async def api_get_roster(session_id: str) -> RosterResponse:
    """Return the roster with the ids of duplicated names flagged."""
    return _roster_response(_workspace(session_id))


@app.post("/api/sessions/{session_id}/roster", response_model=RosterResponse)  # type: ignore[untyped-decorator]
async def api_add_participants(session_id: str, request: AddParticipantsRequest) -> RosterResponse:
    """Append participants parsed from newline-separated text.

    Changing the roster resets the draw history and discards any groups.
    """
    workspace = _workspace(session_id)
    roster = workspace.roster
    added = parse_roster(request.text, {p.id for p in roster})
    logger.info("Adding %d participant(s) to session %s", len(added), session_id)
    workspace.replace_roster(roster + added)
    return _roster_response(workspace)


@app.post("/api/sessions/{session_id}/roster/sample", response_model=RosterResponse)  # type: ignore[untyped-decorator]
async def api_add_sample(session_id: str) -> RosterResponse:
    """Append the built-in sample names."""
    workspace = _workspace(session_id)
    roster = workspace.roster
    workspace.replace_roster(roster + sample_roster({p.id for p in roster}))
    return _roster_response(workspace)


@app.post("/api/sessions/{session_id}/roster/dedupe", response_model=RosterResponse)  # type: ignore[untyped-decorator]
async def api_dedupe_roster(session_id: str) -> RosterResponse:
    """Remove every participant whose name repeats an earlier one."""
    workspace = _workspace(session_id)
    workspace.replace_roster(remove_duplicates(workspace.roster))
    return _roster_response(workspace)


@app.delete("/api/sessions/{session_id}/roster", response_model=RosterResponse)  # type: ignore[untyped-decorator]
async def api_clear_roster(session_id: str) -> RosterResponse:
    """Remove all participants."""
    workspace = _workspace(session_id)
    workspace.replace_roster([])
    return _roster_response(workspace)


@app.delete("/api/sessions/{session_id}/roster/{participant_id}", response_model=RosterResponse)  # type: ignore[untyped-decorator]
async def api_remove_participant(session_id: str, participant_id: str) -> RosterResponse:
    """Remove a single participant by id.

    Raises:
        HTTPException 404: If the session or the participant does not exist.
    """
    workspace = _workspace(session_id)
    roster = workspace.roster
    remaining = remove_participant(roster, participant_id)
    if len(remaining) == len(roster):
        raise HTTPException(status_code=404, detail=f"Participant {participant_id!r} not found.")
    workspace.replace_roster(remaining)
    return _roster_response(workspace)


# ---------------------------------------------------------------------------
# Draw endpoints
# ---------------------------------------------------------------------------


@app.get("/api/sessions/{session_id}/draw", response_model=DrawStatusResponse)  # type: ignore[untyped-decorator]
async def api_draw_status(session_id: str) -> DrawStatusResponse:
    """Return the draw state; poll it while spinning to follow the display."""
    return _workspace(session_id).draw.status()


@app.put("/api/sessions/{session_id}/draw/settings", response_model=DrawStatusResponse)  # type: ignore[untyped-decorator]
async def api_draw_settings(session_id: str, request: DrawSettingsRequest) -> DrawStatusResponse:
    """Toggle whether previous winners stay eligible."""
    draw = _workspace(session_id).draw
    draw.allow_repeats = request.allow_repeats
    logger.info("Session %s allow_repeats=%s", session_id, request.allow_repeats)
    return draw.status()


@app.post("/api/sessions/{session_id}/draw/start", response_model=DrawStatusResponse)  # type: ignore[untyped-decorator]
async def api_draw_start(session_id: str) -> DrawStatusResponse:
    """Start spinning.

    Raises:
        HTTPException 409: If nobody is eligible to win.
    """
    try:
        return _workspace(session_id).draw.start_draw()
    except EmptyPoolError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@app.post("/api/sessions/{session_id}/draw/stop", response_model=DrawStatusResponse)  # type: ignore[untyped-decorator]
async def api_draw_stop(session_id: str) -> DrawStatusResponse:
    """Stop spinning and commit a winner. A no-op when not spinning.

    Raises:
        HTTPException 409: If the pool emptied while spinning.
    """
    try:
        return _workspace(session_id).draw.stop_draw()
    except EmptyPoolError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@app.post("/api/sessions/{session_id}/draw/reset", response_model=DrawStatusResponse)  # type: ignore[untyped-decorator]
async def api_draw_reset(session_id: str) -> DrawStatusResponse:
    """Cancel any spin and clear history, display and error."""
    return _workspace(session_id).draw.reset_session()


@app.post("/api/sessions/{session_id}/draw/clear-history", response_model=DrawStatusResponse)  # type: ignore[untyped-decorator]
async def api_draw_clear_history(session_id: str, request: ClearHistoryRequest) -> DrawStatusResponse:
    """Clear the winner history.

    Raises:
        HTTPException 400: If the request does not carry ``confirm: true``.
    """
    try:
        return _workspace(session_id).draw.clear_history(confirm=request.confirm)
    except ConfirmationRequiredError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Group endpoints
# ---------------------------------------------------------------------------


@app.post("/api/sessions/{session_id}/groups", response_model=GroupsResponse)  # type: ignore[untyped-decorator]
async def api_generate_groups(session_id: str, request: GenerateGroupsRequest) -> GroupsResponse:
    """Shuffle the roster into new groups, replacing any previous partition.

    A group size below 1 is rejected by request validation with HTTP 422.
    """
    workspace = _workspace(session_id)
    workspace.groups = generate_groups(workspace.roster, request.group_size)
    return GroupsResponse(groups=workspace.groups)


@app.get("/api/sessions/{session_id}/groups", response_model=GroupsResponse)  # type: ignore[untyped-decorator]
async def api_get_groups(session_id: str) -> GroupsResponse:
    """Return the current partition."""
    return GroupsResponse(groups=_workspace(session_id).groups)


@app.post("/api/sessions/{session_id}/groups/names", response_model=GroupsResponse)  # type: ignore[untyped-decorator]
async def api_name_groups(session_id: str) -> GroupsResponse:
    """Replace default group names with generated team names.

    Membership is never changed; on failure the existing names stay.

    Raises:
        HTTPException 409: If no groups have been generated yet.
        HTTPException 502: If the naming service failed.
    """
    workspace = _workspace(session_id)
    if not workspace.groups:
        raise HTTPException(status_code=409, detail="Generate groups before naming them.")

    try:
        await enrich_group_names(workspace.groups, get_name_enricher())
    except EnrichmentFailureError as exc:
        logger.warning("Team naming failed for session %s: %s", session_id, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return GroupsResponse(groups=workspace.groups)


@app.get("/api/sessions/{session_id}/groups/export")  # type: ignore[untyped-decorator]
async def api_export_groups(session_id: str) -> Response:
    """Download the current partition as CSV, one row per member."""
    content = export_csv(_workspace(session_id).groups)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="groups_export.csv"'},
    )
