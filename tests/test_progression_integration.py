from __future__ import annotations

from storyarc.modules.arc.events import ProgressionEvent
from storyarc.modules.arc.schemas import (
    ProgressionGate,
    ProgressionIntegration,
    SkillUnlock,
    SpecializationOpportunity,
    UnlockCondition,
    evolve,
)
from storyarc.modules.integration.progression import adjusted_experience, integrate_progression
from tests.support.arc_factories import make_arc, make_character, make_world


def _arc_with(integration: ProgressionIntegration):
    arc = make_arc()
    return evolve(arc, integration_points=evolve(arc.integration_points, progression=integration))


def test_experience_is_scaled_by_difficulty_and_agency() -> None:
    arc = _arc_with(ProgressionIntegration())
    result = integrate_progression(arc, ProgressionEvent(experience_gained=100), make_character(), make_world())

    summary = result.side_effects[0]
    assert summary["type"] == "experience_modifications"
    assert summary["adjusted_experience"] == 152
    assert [item["type"] for item in summary["modifications"]] == ["difficulty_bonus", "choice_quality_bonus"]
    assert adjusted_experience(0, ProgressionIntegration(), arc) == 0


def test_unlocks_and_gates_follow_character_state() -> None:
    integration = ProgressionIntegration(
        skill_unlocks=(
            SkillUnlock(
                skill_id="parry",
                name="Parry",
                unlock_conditions=(UnlockCondition(type="character_level", value=3),),
            ),
            SkillUnlock(
                skill_id="riposte",
                name="Riposte",
                unlock_conditions=(UnlockCondition(type="character_level", value=9),),
            ),
        ),
        specialization_opportunities=(SpecializationOpportunity(specialization_id="duelist", name="Duelist"),),
        progression_gates=(
            ProgressionGate(gate_id="veteran", required_level=3, required_skills=("swords",)),
            ProgressionGate(gate_id="master", required_level=8),
        ),
    )
    character = make_character(level=4, skills=("swords",))

    result = integrate_progression(_arc_with(integration), ProgressionEvent(), character, make_world())

    kinds = [(effect["type"], effect.get("skill_id") or effect.get("gate_id") or effect.get("specialization_id")) for effect in result.side_effects[1:]]
    assert kinds == [("skill_unlock", "parry"), ("specialization_opportunity", "duelist"), ("gate_unlocked", "veteran")]
    gates = result.updated_arc.integration_points.progression.progression_gates
    assert [(gate.gate_id, gate.is_unlocked) for gate in gates] == [("veteran", True), ("master", False)]

    again = integrate_progression(result.updated_arc, ProgressionEvent(), character, make_world())
    assert not any(effect["type"] == "gate_unlocked" for effect in again.side_effects)


def test_gates_close_when_requirements_lapse() -> None:
    integration = ProgressionIntegration(
        progression_gates=(ProgressionGate(gate_id="strong", required_attributes={"strength": 12}, is_unlocked=True),)
    )
    result = integrate_progression(
        _arc_with(integration),
        ProgressionEvent(),
        make_character(attributes={"strength": 10}),
        make_world(),
    )
    assert result.updated_arc.integration_points.progression.progression_gates[0].is_unlocked is False
