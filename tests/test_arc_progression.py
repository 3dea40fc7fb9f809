from __future__ import annotations

import pytest

from storyarc.config import Settings
from storyarc.modules.arc.errors import ValidationError
from storyarc.modules.arc.schemas import ArcPlayerChoice, DifficultySettings, evolve
from storyarc.modules.progression.engine import (
    adjust_arc_difficulty,
    record_objective_outcome,
    track_player_choice,
    update_arc_progression,
    update_arc_state,
)
from tests.support.arc_factories import make_arc, make_character, with_metrics


def _choice(idx: int, *, agency: float = 5.0, alternatives: tuple[str, ...] = ()) -> ArcPlayerChoice:
    return ArcPlayerChoice(
        id=f"choice-{idx}",
        turn_id=f"turn-{idx}",
        timestamp="2026-01-01T00:00:00+00:00",
        choice_text=f"Choice {idx}",
        alternatives=alternatives,
        agency_score=agency,
    )


def test_progression_tracks_time_and_mean_phase_completion() -> None:
    arc = record_objective_outcome(make_arc(), "arc-1:p1:o1", "completed", turn_id="t1")

    updated = update_arc_progression(arc)

    assert updated.progression.metrics.time_spent == 1
    assert updated.progression.total_progress == pytest.approx(50.0)
    assert updated.progression.phase_progress == 0.0
    assert updated.progression.metrics.efficiency_score == pytest.approx(10.0)


def test_efficiency_holds_until_an_objective_is_attempted() -> None:
    updated = update_arc_progression(make_arc())
    assert updated.progression.metrics.efficiency_score == 5.0


def test_difficulty_is_untouched_before_any_objective_outcome() -> None:
    arc = make_arc()
    assert adjust_arc_difficulty(arc, make_character(level=1), "t1") is arc


def test_struggling_player_gets_lower_difficulty() -> None:
    arc = with_metrics(make_arc(), objectives_failed=4)

    updated = adjust_arc_difficulty(arc, make_character(level=1), "t9")

    assert updated.difficulty == pytest.approx(1.64)
    history = updated.difficulty_settings.difficulty_history
    assert len(history) == 1
    assert history[0].old_difficulty == 5.0
    assert history[0].turn_id == "t9"
    assert history[0].reason == "Player struggling significantly"
    assert updated.progression.metrics.difficulty_adjustments == 1


def test_difficulty_target_is_clamped_to_range() -> None:
    arc = make_arc(difficulty_settings=DifficultySettings(base_difficulty=10.0, current_difficulty=5.0))
    arc = with_metrics(arc, objectives_completed=5)

    updated = adjust_arc_difficulty(arc, make_character(level=20), "t2")

    assert updated.difficulty == 10.0
    assert updated.difficulty_settings.difficulty_history[0].reason == "Player finding content too easy"


def test_small_difficulty_changes_are_ignored() -> None:
    arc = with_metrics(make_arc(), objectives_completed=3, objectives_failed=2)
    assert adjust_arc_difficulty(arc, make_character(level=10), "t3") is arc


def test_adaptive_scaling_can_be_disabled() -> None:
    arc = make_arc(difficulty_settings=DifficultySettings(adaptive_scaling=False))
    arc = with_metrics(arc, objectives_failed=4)
    assert adjust_arc_difficulty(arc, make_character(level=1), "t4") is arc


def test_track_player_choice_updates_agency() -> None:
    arc = track_player_choice(make_arc(), _choice(1, agency=8.0))

    metrics = arc.progression.metrics
    agency = arc.player_agency_metrics
    assert metrics.total_choices_made == 1
    assert metrics.significant_choices == 1
    assert metrics.player_agency_average == 8.0
    assert agency.impactful_decisions == 1
    assert agency.player_initiated_actions == 1
    assert 0.0 <= agency.overall_agency_score <= 100.0

    arc = track_player_choice(arc, _choice(2, agency=4.0, alternatives=("a", "b")))
    assert arc.progression.metrics.player_agency_average == pytest.approx(6.0)
    assert arc.player_agency_metrics.meaningful_alternatives == 2
    assert arc.player_agency_metrics.player_initiated_actions == 1


def test_choice_history_is_capped() -> None:
    cfg = Settings(choice_history_limit=2)
    arc = make_arc()
    for idx in range(1, 4):
        arc = track_player_choice(arc, _choice(idx), cfg=cfg)

    assert [choice.id for choice in arc.progression.player_choice_history] == ["choice-2", "choice-3"]
    assert arc.progression.metrics.total_choices_made == 3


def test_completing_primary_objectives_advances_phase() -> None:
    arc = record_objective_outcome(make_arc(), "arc-1:p1:o1", "completed", turn_id="t5")

    assert arc.progression.current_phase_id == "arc-1:p2"
    assert [milestone.id for milestone in arc.progression.milestones] == ["arc-1:arc-1:p1:milestone"]
    assert arc.progression.metrics.objectives_completed == 1
    assert arc.progression.metrics.milestones_achieved == 1


def test_repeated_outcome_is_counted_once() -> None:
    arc = make_arc()
    arc = record_objective_outcome(arc, "arc-1:p2:o1", "failed", turn_id="t1")
    arc = record_objective_outcome(arc, "arc-1:p2:o1", "failed", turn_id="t2")
    assert arc.progression.metrics.objectives_failed == 1


def test_final_phase_stays_current_when_done() -> None:
    arc = evolve(make_arc(), progression=evolve(make_arc().progression, current_phase_id="arc-1:p2"))

    arc = record_objective_outcome(arc, "arc-1:p2:o1", "completed", turn_id="t7")

    assert arc.progression.current_phase_id == "arc-1:p2"
    assert arc.progression.phase_progress == 100.0


def test_unknown_objective_is_rejected() -> None:
    with pytest.raises(ValidationError):
        record_objective_outcome(make_arc(), "missing", "completed", turn_id="t1")


def test_state_history_is_capped_and_flags_merge() -> None:
    cfg = Settings(state_history_limit=2)
    arc = make_arc()
    for idx in range(3):
        arc = update_arc_state(arc, {f"flag_{idx}": True}, turn_id=f"t{idx}", trigger="test", cfg=cfg)

    tracking = arc.state_tracking
    assert tracking.flags == {"flag_0": True, "flag_1": True, "flag_2": True}
    assert [snapshot.turn_id for snapshot in tracking.history] == ["t1", "t2"]
