from __future__ import annotations

from storyarc.modules.arc.models import DetectedFailure
from storyarc.modules.failure.recovery import generate_recovery_options, recovery_option_id
from tests.support.arc_factories import make_arc, make_character, make_world


def _failure(metric: str, value: float = 0.9) -> DetectedFailure:
    return DetectedFailure(
        metric=metric,
        current_value=value,
        threshold=0.5,
        severity="concern",
        description=f"{metric} failure",
        suggested_actions=(),
    )


def test_objective_failures_offer_guidance_and_difficulty_reduction() -> None:
    arc = make_arc("arc-r")
    options = generate_recovery_options(arc, [_failure("objective_failures")], make_character(), make_world())

    assert [option.id for option in options] == [
        "arc-r:objective_failures:guidance",
        "arc-r:objective_failures:difficulty_reduction",
    ]
    assert [option.effectiveness for option in options] == [70.0, 85.0]
    assert options[1].cost.type == "narrative_consequence"
    assert all(option.trigger_conditions == ("objective_failures",) for option in options)


def test_option_ids_are_stable_and_deduplicated() -> None:
    arc = make_arc("arc-r")
    failures = [_failure("resource_depletion"), _failure("resource_depletion", 0.95)]

    first = generate_recovery_options(arc, failures, make_character(), make_world())
    second = generate_recovery_options(arc, failures, make_character(), make_world())

    assert first == second
    assert len(first) == 1
    assert first[0].id == recovery_option_id("arc-r", "resource_depletion", "resource_boost")
    assert first[0].player_choice_required is False


def test_metrics_without_catalog_entries_get_no_options() -> None:
    options = generate_recovery_options(make_arc(), [_failure("player_frustration")], make_character(), make_world())
    assert options == []


def test_relationship_breakdown_costs_time() -> None:
    options = generate_recovery_options(make_arc(), [_failure("relationship_breakdown")], make_character(), make_world())
    assert len(options) == 1
    assert options[0].recovery_type == "narrative_intervention"
    assert options[0].cost.type == "time"
    assert options[0].cost.amount == 2
