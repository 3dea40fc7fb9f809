from __future__ import annotations

import pytest

from storyarc.modules.arc.errors import ValidationError
from storyarc.modules.arc.events import CombatResultEvent, PlayerChoiceEvent
from storyarc.modules.arc.schemas import PlayerAgencyMetrics
from storyarc.modules.failure.support import NullLearningStrategy
from storyarc.modules.generation.engine import NarrativeGenerator
from storyarc.modules.manager.service import ArcManager
from tests.support.arc_factories import make_arc, make_character, make_generation_input, make_world, with_metrics


class _BrokenNarrator(NarrativeGenerator):
    name = "broken"

    def compose(self, archetype, template, payload):
        raise ValueError("no words today")


def _manager_with(*arcs, **kwargs) -> ArcManager:
    return ArcManager.from_snapshot({"active": [arc.model_dump(mode="json") for arc in arcs]}, **kwargs)


def test_create_arc_stores_active_arc() -> None:
    manager = ArcManager()

    result = manager.create_arc(make_generation_input())

    assert result.success
    assert result.arc.status == "active"
    assert result.generation.archetype == "adventure_arc"
    assert result.generation.arc is result.arc
    assert [arc.id for arc in manager.list_active_arcs()] == [result.arc.id]
    assert manager.get_global_arc_metrics().total_arcs_created == 1


def test_arc_order_continues_per_character() -> None:
    manager = ArcManager()
    first = manager.create_arc(make_generation_input()).arc
    second = manager.create_arc(make_generation_input()).arc
    other = manager.create_arc(make_generation_input(character=make_character(id="hero-2"))).arc

    assert (first.order, second.order, other.order) == (1, 2, 1)


def test_invalid_generation_input_is_reported() -> None:
    manager = ArcManager()

    result = manager.create_arc({"series_name": "", "character": {"id": "x"}})

    assert not result.success
    assert result.error_code == "ARC_INPUT_INVALID"
    assert manager.list_active_arcs() == []
    assert manager.get_global_arc_metrics().total_arcs_created == 0


def test_narrator_failure_is_reported_as_generation_error() -> None:
    manager = ArcManager(narrator=_BrokenNarrator())

    result = manager.create_arc(make_generation_input())

    assert not result.success
    assert result.error_code == "ARC_GENERATION_FAILED"
    assert "no words today" in result.error
    assert manager.list_active_arcs() == []


def test_update_unknown_arc_is_not_found() -> None:
    manager = ArcManager()

    result = manager.update_arc("ghost", make_character(), make_world(), "t1", CombatResultEvent(victory=True))

    assert not result.success
    assert result.error_code == "ARC_NOT_FOUND"
    metrics = manager.get_global_arc_metrics()
    assert (metrics.total_updates, metrics.failed_updates) == (1, 1)


def test_failed_update_leaves_store_untouched() -> None:
    manager = _manager_with(make_arc())
    before = manager.export_snapshot()

    result = manager.update_arc("arc-1", make_character(), make_world(), "t1", {"kind": "bogus"})

    assert not result.success
    assert result.error_code == "ARC_INPUT_INVALID"
    after = manager.export_snapshot()
    assert after["active"] == before["active"]
    assert after["history"] == before["history"]
    assert (after["metrics"]["total_updates"], after["metrics"]["failed_updates"]) == (1, 1)


def test_player_choice_update() -> None:
    manager = _manager_with(make_arc())

    result = manager.update_arc(
        "arc-1",
        make_character(),
        make_world(),
        "t1",
        PlayerChoiceEvent(choice_text="Scout the ridge", agency_score=8.0),
    )

    assert result.success
    arc = result.updated_arc
    assert arc.progression.metrics.time_spent == 1
    assert arc.progression.metrics.total_choices_made == 1
    assert arc.progression.player_choice_history[0].id == "arc-1:choice-1"
    assert arc.progression.player_choice_history[0].phase_id == "arc-1:p1"
    assert result.update_results[-1] == {"type": "player_choice", "agency_score": arc.agency_score, "significant": True}
    assert manager.get_arc("arc-1") == arc


def test_detected_failures_attach_recovery_options() -> None:
    arc = with_metrics(make_arc(), objectives_failed=3, objectives_completed=1)
    manager = _manager_with(arc)

    result = manager.update_arc("arc-1", make_character(), make_world(), "t1", CombatResultEvent(victory=False))

    assert result.success
    assert [failure.metric for failure in result.failure_detection.failures] == ["objective_failures", "time_exceeded"]
    option_ids = [option.id for option in result.recovery_options]
    assert option_ids == ["arc-1:objective_failures:guidance", "arc-1:objective_failures:difficulty_reduction"]
    assert [option.id for option in result.updated_arc.failure_recovery.recovery_options] == option_ids
    assert result.update_results[0]["type"] == "failure_detection"
    assert result.update_results[-1]["type"] == "combat"


def test_quest_completion_through_manager_advances_phase() -> None:
    manager = ArcManager()
    arc = manager.create_arc(make_generation_input()).arc
    event = {
        "kind": "quest_event",
        "quest_id": "q-intro",
        "event": "completed",
        "objective_id": f"{arc.id}:introduction:objective-1",
    }

    result = manager.update_arc(arc.id, make_character(), make_world(), "t2", event)

    assert result.success
    assert result.updated_arc.progression.current_phase_id == f"{arc.id}:development"
    assert result.updated_arc.progression.metrics.milestones_achieved == 1


def test_completed_arc_moves_to_history_exactly_once() -> None:
    manager = ArcManager()
    arc = manager.create_arc(make_generation_input()).arc

    result = manager.complete_arc(arc.id, make_character(), make_world(), "The village was saved.")

    assert result.success
    assert result.completed_arc.is_completed
    assert result.completed_arc.status == "completed"
    assert result.completed_arc.completion_summary == "The village was saved."
    assert manager.list_active_arcs() == []
    assert [item.id for item in manager.history()] == [arc.id]
    assert manager.get_arc(arc.id).status == "completed"
    assert manager.get_global_arc_metrics().total_arcs_completed == 1

    again = manager.complete_arc(arc.id, make_character(), make_world(), "")
    assert again.error_code == "ARC_NOT_FOUND"
    assert len(manager.history()) == 1


def test_completion_rewards() -> None:
    arc = with_metrics(make_arc(player_agency_metrics=PlayerAgencyMetrics(overall_agency_score=80.0)), time_spent=10)
    manager = _manager_with(arc)

    result = manager.complete_arc("arc-1", make_character(), make_world(), "done")

    assert [(reward.type, reward.amount) for reward in result.rewards] == [
        ("experience", 1000),
        ("skill_points", 2),
        ("currency", 200),
    ]
    assert result.final_metrics.total_duration == 10
    assert result.final_metrics.final_agency_score == 80.0
    metrics = manager.get_global_arc_metrics()
    assert metrics.average_arc_duration == 10.0
    assert metrics.average_agency_score == 80.0


def test_suggestions_reflect_themes_and_level() -> None:
    arc = make_arc(thematic_tags=("growth",))
    manager = _manager_with(arc)

    result = manager.complete_arc("arc-1", make_character(level=6), make_world(), "")

    assert result.next_arc_suggestions == [
        "Consider a challenge-focused arc to test new abilities",
        "Ready for more complex multi-phase arcs",
    ]


def test_snapshot_round_trip() -> None:
    manager = ArcManager()
    kept = manager.create_arc(make_generation_input()).arc
    finished = manager.create_arc(make_generation_input()).arc
    manager.update_arc(kept.id, make_character(), make_world(), "t1", PlayerChoiceEvent(choice_text="Wait"))
    manager.complete_arc(finished.id, make_character(), make_world(), "over")

    exported = manager.export_snapshot()
    restored = ArcManager.from_snapshot(exported)
    again = restored.export_snapshot()

    assert again["version"] == exported["version"] == 1
    assert again["active"] == exported["active"]
    assert again["history"] == exported["history"]
    assert again["metrics"] == exported["metrics"]


def test_snapshot_rejects_inconsistent_state() -> None:
    completed = make_arc("arc-done", status="completed", is_completed=True)
    with pytest.raises(ValidationError):
        ArcManager.from_snapshot({"active": [completed.model_dump(mode="json")]})

    active = make_arc("arc-dup")
    with pytest.raises(ValidationError):
        ArcManager.from_snapshot(
            {
                "active": [active.model_dump(mode="json")],
                "history": [make_arc("arc-dup", status="completed", is_completed=True).model_dump(mode="json")],
            }
        )

    with pytest.raises(ValidationError):
        ArcManager.from_snapshot({"version": 99})

    with pytest.raises(ValidationError, match="duplicate arc order 1 for character hero-1"):
        ArcManager.from_snapshot(
            {"active": [make_arc("arc-a", order=1).model_dump(mode="json"), make_arc("arc-b", order=1).model_dump(mode="json")]}
        )

    with pytest.raises(ValidationError):
        ArcManager.from_snapshot(
            {
                "active": [make_arc("arc-a", order=2).model_dump(mode="json")],
                "history": [
                    make_arc("arc-old", order=2, status="completed", is_completed=True).model_dump(mode="json"),
                ],
            }
        )

    other_hero = ArcManager.from_snapshot(
        {
            "active": [
                make_arc("arc-a", order=1).model_dump(mode="json"),
                make_arc("arc-b", character_id="hero-2", order=1).model_dump(mode="json"),
            ]
        }
    )
    assert [arc.id for arc in other_hero.list_active_arcs()] == ["arc-a", "arc-b"]


def test_support_responses_feed_global_metrics() -> None:
    manager = _manager_with(make_arc())

    result = manager.record_support_response("arc-1", "guidance", 0.0)

    assert result.success
    assert result.previous_level == "moderate"
    metrics = manager.get_global_arc_metrics()
    assert (metrics.support_responses, metrics.support_acceptances) == (1, 0)
    assert metrics.failure_recovery_success_rate == 0.0

    manager.record_support_response("arc-1", "guidance", 0.6)
    assert manager.get_global_arc_metrics().failure_recovery_success_rate == pytest.approx(0.5)


def test_learning_uses_configured_strategy() -> None:
    manager = _manager_with(make_arc(), learning_strategy=NullLearningStrategy())

    result = manager.record_learning("arc-1", "stealth", "failure")

    assert result.success
    assert result.update_results[0]["strategy"] == "null"
    assert manager.record_learning("arc-1", "stealth", "maybe").error_code == "ARC_INPUT_INVALID"


def test_analytics_cover_active_and_unknown_arcs() -> None:
    manager = _manager_with(make_arc())
    manager.update_arc("arc-1", make_character(), make_world(), "t1", CombatResultEvent(victory=True))

    analytics = manager.get_arc_analytics("arc-1")

    assert analytics.arc_id == "arc-1"
    assert analytics.combat_encounters == 1
    assert analytics.support_level == "moderate"
    assert 1.0 <= analytics.quality_score <= 10.0
    assert manager.get_arc_analytics("ghost") is None
