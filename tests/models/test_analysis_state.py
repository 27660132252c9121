from __future__ import annotations

import pytest

from alpha_screener.models.analysis_state import (
    ALLOWED_TRANSITIONS,
    AnalysisState,
    InvalidStateTransitionError,
    can_transition,
    create_initial_progress,
    transition_state,
)

S = AnalysisState


def test_initial_progress_is_idle_with_empty_history():
    progress = create_initial_progress()

    assert progress.current_state is S.IDLE
    assert progress.state_history == ()
    assert progress.completed_at is None
    assert progress.started_at.tzinfo is not None


def test_transition_is_pure_and_appends_history():
    start = create_initial_progress()

    moved = transition_state(start, S.FETCHING_DOCUMENTATION, {"url": "https://docs"})

    assert start.current_state is S.IDLE
    assert start.state_history == ()
    assert moved.current_state is S.FETCHING_DOCUMENTATION
    record = moved.state_history[0]
    assert (record.from_state, record.to_state) == (S.IDLE, S.FETCHING_DOCUMENTATION)
    assert record.metadata == {"url": "https://docs"}
    assert moved.completed_at is None


def test_transition_serializes_with_from_and_to_keys():
    moved = transition_state(create_initial_progress(), S.FETCHING_DOCUMENTATION)

    dumped = moved.state_history[0].model_dump(by_alias=True, mode="json")

    assert dumped["from"] == "IDLE"
    assert dumped["to"] == "FETCHING_DOCUMENTATION"


def test_completed_at_set_only_on_terminal_state():
    progress = create_initial_progress()
    path = [
        S.FETCHING_DOCUMENTATION,
        S.ANALYZING_DOCUMENTATION,
        S.CHECKING_FUNDING_SIGNAL,
        S.NO_FUNDING,
        S.FETCHING_MARKET_DATA,
        S.ANALYZING_MARKET,
        S.FETCHING_TEAM_DATA,
        S.ANALYZING_TEAM,
        S.GENERATING_RATING,
        S.FORMATTING_OUTPUT,
    ]
    for state in path:
        progress = transition_state(progress, state)
        assert progress.completed_at is None

    done = transition_state(progress, S.COMPLETED)

    assert done.completed_at is not None
    assert done.is_terminal
    assert done.visited_states == [*path, S.COMPLETED]


def test_failed_is_reachable_from_any_non_terminal_state():
    for state in ALLOWED_TRANSITIONS:
        if state in (S.COMPLETED, S.FAILED):
            continue
        assert can_transition(state, S.FAILED)


def test_failed_records_error_message():
    progress = transition_state(create_initial_progress(), S.FETCHING_DOCUMENTATION)

    failed = transition_state(progress, S.FAILED, {"error_type": "TimeoutError"}, error="timed out")

    assert failed.error == "timed out"
    assert failed.completed_at is not None
    assert failed.state_history[-1].metadata == {"error_type": "TimeoutError"}


@pytest.mark.parametrize(
    ("current", "requested"),
    [
        (S.IDLE, S.ANALYZING_MARKET),
        (S.CHECKING_FUNDING_SIGNAL, S.FETCHING_MARKET_DATA),
        (S.ANALYZING_MARKET, S.FETCHING_CODE),
    ],
)
def test_out_of_order_transition_is_rejected(current, requested):
    with pytest.raises(InvalidStateTransitionError) as excinfo:
        transition_state(create_initial_progress().model_copy(update={"current_state": current}), requested)

    assert excinfo.value.current is current
    assert excinfo.value.requested is requested


@pytest.mark.parametrize("terminal", [S.COMPLETED, S.FAILED])
def test_terminal_states_are_final(terminal):
    progress = create_initial_progress().model_copy(update={"current_state": terminal})

    with pytest.raises(InvalidStateTransitionError):
        transition_state(progress, S.FAILED)


def test_code_stage_is_optional_after_team():
    assert can_transition(S.ANALYZING_TEAM, S.FETCHING_CODE)
    assert can_transition(S.ANALYZING_TEAM, S.GENERATING_RATING)
