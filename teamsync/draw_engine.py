"""Prize draw state machine.

Tracks the roster snapshot, winner history and the allow-repeats policy,
and drives a cosmetic "spin" that keeps publishing random names until the
draw is stopped and a winner is committed.
"""

import asyncio
import logging
import random
from collections.abc import Sequence
from contextlib import suppress
from datetime import UTC, datetime

from teamsync.models import DrawState, DrawStatusResponse, Participant, WinnerRecord, WinnerView
from teamsync.randomness import pick_one

logger = logging.getLogger(__name__)

# Text shown before the first draw and after any reset.
DEFAULT_PLACEHOLDER = "Ready?"

# Interval between spin ticks.
TICK_INTERVAL_SECONDS = 0.05


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------


class DrawError(Exception):
    """Base exception for draw-engine errors."""


class EmptyPoolError(DrawError):
    """Raised when a draw is attempted with no eligible participants.

    Either the roster is empty, or everyone has already won and repeats
    are disallowed. Add participants, allow repeats, or clear the history.
    """


class ConfirmationRequiredError(DrawError):
    """Raised when clearing the winner history without explicit confirmation."""


# ---------------------------------------------------------------------------
# Pool computation
# ---------------------------------------------------------------------------


def compute_eligible_pool(
    roster: Sequence[Participant],
    history: Sequence[WinnerRecord],
    allow_repeats: bool,
) -> list[Participant]:
    """Return the participants still allowed to win.

    Args:
        roster: Current roster snapshot.
        history: Committed winners, newest first.
        allow_repeats: When true, previous winners remain eligible.

    Returns:
        The full roster when repeats are allowed, otherwise the roster
        minus every participant whose id appears in ``history``. Roster
        order is preserved. An exhausted pool is an empty list.
    """
    if allow_repeats:
        return list(roster)
    winner_ids = {record.participant.id for record in history}
    return [participant for participant in roster if participant.id not in winner_ids]


# ---------------------------------------------------------------------------
# DrawEngine
# ---------------------------------------------------------------------------


class DrawEngine:
    """Single-session draw controller.

    The spinning animation is an ``asyncio.Task`` owned by the engine. At
    most one such task exists; it is cancelled before any state mutation
    that could race with it, so a late tick never overwrites a committed
    winner. ``start_draw`` therefore must be called from a running event
    loop.
    """

    def __init__(
        self,
        roster: Sequence[Participant] = (),
        *,
        allow_repeats: bool = False,
        rng: random.Random | None = None,
        tick_interval: float = TICK_INTERVAL_SECONDS,
    ) -> None:
        self._roster: list[Participant] = list(roster)
        self._history: list[WinnerRecord] = []
        self._rng = rng
        self._tick_interval = tick_interval
        self._ticker: asyncio.Task[None] | None = None
        self.allow_repeats = allow_repeats
        self.state = DrawState.IDLE
        self.current_display = DEFAULT_PLACEHOLDER
        self.error: str | None = None

    # -- read-only views -----------------------------------------------------

    @property
    def roster(self) -> list[Participant]:
        return list(self._roster)

    @property
    def history(self) -> list[WinnerRecord]:
        return list(self._history)

    @property
    def is_ticking(self) -> bool:
        return self._ticker is not None

    def eligible_pool(self) -> list[Participant]:
        """Recompute the eligible pool from the live roster, history and policy."""
        return compute_eligible_pool(self._roster, self._history, self.allow_repeats)

    def status(self) -> DrawStatusResponse:
        """Return a serializable snapshot of the engine."""
        return DrawStatusResponse(
            state=self.state,
            current_display=self.current_display,
            allow_repeats=self.allow_repeats,
            eligible_count=len(self.eligible_pool()),
            error=self.error,
            history=[
                WinnerView(
                    participant_id=record.participant.id,
                    participant_name=record.participant.name,
                    timestamp=record.timestamp,
                )
                for record in self._history
            ],
        )

    # -- ticker --------------------------------------------------------------

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            pool = self.eligible_pool()
            if pool:
                self.current_display = pick_one(pool, self._rng).name

    def _cancel_ticker(self) -> None:
        # Cancellation is delivered at the task's next await, and the loop is
        # single-threaded, so no tick can publish after this returns.
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def aclose(self) -> None:
        """Cancel the ticker and wait for it to finish unwinding."""
        ticker = self._ticker
        self._cancel_ticker()
        if ticker is not None:
            with suppress(asyncio.CancelledError):
                await ticker

    # -- operations ----------------------------------------------------------

    def start_draw(self) -> DrawStatusResponse:
        """Begin spinning.

        Calling this while already spinning replaces the running ticker.

        Raises:
            EmptyPoolError: If there is no eligible participant. The engine
                state is left unchanged apart from the recorded error.
        """
        pool = self.eligible_pool()
        if not pool:
            self.error = "No eligible participants left!"
            raise EmptyPoolError(
                "No eligible participants left. Add participants, allow repeats, or clear the winner history."
            )

        self._cancel_ticker()
        self.error = None
        self.state = DrawState.SPINNING
        self._ticker = asyncio.get_running_loop().create_task(self._tick())
        logger.info("Draw started with %d eligible participant(s)", len(pool))
        return self.status()

    def stop_draw(self) -> DrawStatusResponse:
        """Stop spinning and commit a winner.

        The winner is an independent uniform draw from the live pool; the
        last displayed tick is not binding. Calling this while idle is a
        no-op that returns the current status.

        Raises:
            EmptyPoolError: If the pool emptied while spinning. The engine
                returns to idle without recording a winner.
        """
        if self.state is not DrawState.SPINNING:
            logger.debug("stop_draw called while idle, ignoring")
            return self.status()

        self._cancel_ticker()
        self.state = DrawState.IDLE

        pool = self.eligible_pool()
        if not pool:
            self.error = "No eligible participants left!"
            raise EmptyPoolError("The eligible pool emptied while the draw was spinning.")

        winner = pick_one(pool, self._rng)
        self.current_display = winner.name
        self._history.insert(0, WinnerRecord(participant=winner, timestamp=datetime.now(UTC)))
        logger.info("Draw committed: winner %r (id=%s), %d draw(s) so far", winner.name, winner.id, len(self._history))
        return self.status()

    def reset_session(self) -> DrawStatusResponse:
        """Cancel any spin and clear history, display and error.

        ``allow_repeats`` is preserved.
        """
        self._cancel_ticker()
        self._history.clear()
        self.current_display = DEFAULT_PLACEHOLDER
        self.error = None
        self.state = DrawState.IDLE
        logger.info("Draw session reset")
        return self.status()

    def clear_history(self, *, confirm: bool) -> DrawStatusResponse:
        """Clear the winner history and display placeholder.

        Raises:
            ConfirmationRequiredError: If ``confirm`` is false.
        """
        if not confirm:
            raise ConfirmationRequiredError("Clearing the winner history requires explicit confirmation.")
        self._history.clear()
        self.current_display = DEFAULT_PLACEHOLDER
        logger.info("Winner history cleared")
        return self.status()

    def set_roster(self, roster: Sequence[Participant]) -> None:
        """Replace the roster snapshot.

        When the ordered sequence of participant ids changes, the session
        is reset; re-supplying an identical roster keeps the history.
        """
        new_roster = list(roster)
        changed = [p.id for p in new_roster] != [p.id for p in self._roster]
        self._roster = new_roster
        if changed:
            self.reset_session()
