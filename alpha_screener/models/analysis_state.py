"""Pipeline states and the immutable progress record of a single run.

The progression is linear with two optional branches::

    IDLE -> FETCHING_DOCUMENTATION -> ANALYZING_DOCUMENTATION -> CHECKING_FUNDING_SIGNAL
         -> (FETCHING_FUNDING -> ANALYZING_FUNDING | NO_FUNDING)
         -> FETCHING_MARKET_DATA -> ANALYZING_MARKET -> FETCHING_TEAM_DATA -> ANALYZING_TEAM
         -> (FETCHING_CODE -> ANALYZING_CODE)?
         -> GENERATING_RATING -> FORMATTING_OUTPUT -> COMPLETED

``FAILED`` is reachable from every non-terminal state. ``transition_state`` never
mutates its input; callers replace the progress value they hold.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisState(str, Enum):
    IDLE = "IDLE"
    FETCHING_DOCUMENTATION = "FETCHING_DOCUMENTATION"
    ANALYZING_DOCUMENTATION = "ANALYZING_DOCUMENTATION"
    CHECKING_FUNDING_SIGNAL = "CHECKING_FUNDING_SIGNAL"
    FETCHING_FUNDING = "FETCHING_FUNDING"
    ANALYZING_FUNDING = "ANALYZING_FUNDING"
    NO_FUNDING = "NO_FUNDING"
    FETCHING_MARKET_DATA = "FETCHING_MARKET_DATA"
    ANALYZING_MARKET = "ANALYZING_MARKET"
    FETCHING_TEAM_DATA = "FETCHING_TEAM_DATA"
    ANALYZING_TEAM = "ANALYZING_TEAM"
    FETCHING_CODE = "FETCHING_CODE"
    ANALYZING_CODE = "ANALYZING_CODE"
    GENERATING_RATING = "GENERATING_RATING"
    FORMATTING_OUTPUT = "FORMATTING_OUTPUT"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_STATES = frozenset({AnalysisState.COMPLETED, AnalysisState.FAILED})

_S = AnalysisState
ALLOWED_TRANSITIONS: dict[AnalysisState, frozenset[AnalysisState]] = {
    _S.IDLE: frozenset({_S.FETCHING_DOCUMENTATION}),
    _S.FETCHING_DOCUMENTATION: frozenset({_S.ANALYZING_DOCUMENTATION}),
    _S.ANALYZING_DOCUMENTATION: frozenset({_S.CHECKING_FUNDING_SIGNAL}),
    _S.CHECKING_FUNDING_SIGNAL: frozenset({_S.FETCHING_FUNDING, _S.NO_FUNDING}),
    _S.FETCHING_FUNDING: frozenset({_S.ANALYZING_FUNDING}),
    _S.ANALYZING_FUNDING: frozenset({_S.FETCHING_MARKET_DATA}),
    _S.NO_FUNDING: frozenset({_S.FETCHING_MARKET_DATA}),
    _S.FETCHING_MARKET_DATA: frozenset({_S.ANALYZING_MARKET}),
    _S.ANALYZING_MARKET: frozenset({_S.FETCHING_TEAM_DATA}),
    _S.FETCHING_TEAM_DATA: frozenset({_S.ANALYZING_TEAM}),
    _S.ANALYZING_TEAM: frozenset({_S.FETCHING_CODE, _S.GENERATING_RATING}),
    _S.FETCHING_CODE: frozenset({_S.ANALYZING_CODE}),
    _S.ANALYZING_CODE: frozenset({_S.GENERATING_RATING}),
    _S.GENERATING_RATING: frozenset({_S.FORMATTING_OUTPUT}),
    _S.FORMATTING_OUTPUT: frozenset({_S.COMPLETED}),
    _S.COMPLETED: frozenset(),
    _S.FAILED: frozenset(),
}


class InvalidStateTransitionError(RuntimeError):
    """Raised when a transition leaves the permitted state graph."""

    def __init__(self, current: AnalysisState, requested: AnalysisState) -> None:
        super().__init__(f"Cannot transition from {current.value} to {requested.value}.")
        self.code = "409_INVALID_STATE_TRANSITION"
        self.current = current
        self.requested = requested


class StateTransition(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_state: AnalysisState = Field(..., alias="from")
    to_state: AnalysisState = Field(..., alias="to")
    timestamp: datetime
    metadata: dict[str, Any] | None = None


class AnalysisProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_state: AnalysisState = AnalysisState.IDLE
    state_history: tuple[StateTransition, ...] = ()
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.current_state in TERMINAL_STATES

    @property
    def visited_states(self) -> list[AnalysisState]:
        return [transition.to_state for transition in self.state_history]


def create_initial_progress() -> AnalysisProgress:
    return AnalysisProgress(current_state=AnalysisState.IDLE, started_at=_utcnow())


def can_transition(current: AnalysisState, requested: AnalysisState) -> bool:
    if current in TERMINAL_STATES:
        return False
    if requested is AnalysisState.FAILED:
        return True
    return requested in ALLOWED_TRANSITIONS[current]


def transition_state(
    progress: AnalysisProgress,
    new_state: AnalysisState,
    metadata: dict[str, Any] | None = None,
    *,
    error: str | None = None,
) -> AnalysisProgress:
    """Return a new progress record with ``new_state`` appended to its history."""
    if not can_transition(progress.current_state, new_state):
        raise InvalidStateTransitionError(progress.current_state, new_state)
    now = _utcnow()
    transition = StateTransition(
        from_state=progress.current_state,
        to_state=new_state,
        timestamp=now,
        metadata=dict(metadata) if metadata else None,
    )
    update: dict[str, Any] = {
        "current_state": new_state,
        "state_history": (*progress.state_history, transition),
    }
    if new_state in TERMINAL_STATES:
        update["completed_at"] = now
    if error is not None:
        update["error"] = error
    return progress.model_copy(update=update)
