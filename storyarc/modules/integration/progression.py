from __future__ import annotations

import math

from storyarc.modules.arc.errors import IntegrationError
from storyarc.modules.arc.events import ProgressionEvent
from storyarc.modules.arc.models import IntegrationResult
from storyarc.modules.arc.schemas import Arc, ProgressionGate, ProgressionIntegration, evolve
from storyarc.modules.arc.snapshots import CharacterSnapshot, WorldStateSnapshot
from storyarc.modules.integration.conditions import all_conditions_met

ADAPTER_NAME = "progression"


def experience_modifications(integration: ProgressionIntegration, arc: Arc) -> list[dict]:
    scaling = integration.experience_scaling
    modifications: list[dict] = []
    if scaling.base_experience_multiplier != 1.0:
        modifications.append(
            {
                "type": "base_multiplier",
                "multiplier": scaling.base_experience_multiplier,
                "reason": "Arc base experience scaling",
            }
        )
    difficulty_bonus = arc.difficulty * scaling.difficulty_bonus
    if difficulty_bonus > 0:
        modifications.append(
            {
                "type": "difficulty_bonus",
                "bonus": difficulty_bonus,
                "reason": f"Arc difficulty: {arc.difficulty:g}",
            }
        )
    choice_bonus = arc.agency_score / 100.0 * scaling.choice_quality_bonus
    if choice_bonus > 0:
        modifications.append(
            {
                "type": "choice_quality_bonus",
                "bonus": choice_bonus,
                "reason": f"Player agency score: {arc.agency_score:g}",
            }
        )
    return modifications


def adjusted_experience(experience: int, integration: ProgressionIntegration, arc: Arc) -> int:
    scaling = integration.experience_scaling
    multiplier = (
        scaling.base_experience_multiplier
        + arc.difficulty * scaling.difficulty_bonus
        + arc.agency_score / 100.0 * scaling.choice_quality_bonus
    )
    return math.floor(experience * multiplier)


def gate_is_open(gate: ProgressionGate, character: CharacterSnapshot) -> bool:
    if character.level < gate.required_level:
        return False
    skills = set(character.skills)
    if any(skill not in skills for skill in gate.required_skills):
        return False
    return all(character.attributes.get(name, 0) >= value for name, value in gate.required_attributes.items())


def integrate_progression(
    arc: Arc,
    event: ProgressionEvent,
    character: CharacterSnapshot,
    world: WorldStateSnapshot,
) -> IntegrationResult:
    if getattr(event, "kind", None) != "progression_event":
        raise IntegrationError(adapter=ADAPTER_NAME, event_kind=str(getattr(event, "kind", type(event).__name__)))
    integration = arc.integration_points.progression
    if integration is None:
        return IntegrationResult(kind=ADAPTER_NAME, updated_arc=arc)

    side_effects: list[dict] = [
        {
            "type": "experience_modifications",
            "event_type": event.event_type,
            "modifications": experience_modifications(integration, arc),
            "base_experience": event.experience_gained,
            "adjusted_experience": adjusted_experience(event.experience_gained, integration, arc),
        }
    ]
    for unlock in integration.skill_unlocks:
        if all_conditions_met(unlock.unlock_conditions, arc, character, world):
            side_effects.append({"type": "skill_unlock", "skill_id": unlock.skill_id, "name": unlock.name})
    for opportunity in integration.specialization_opportunities:
        if all_conditions_met(opportunity.unlock_conditions, arc, character, world):
            side_effects.append(
                {
                    "type": "specialization_opportunity",
                    "specialization_id": opportunity.specialization_id,
                    "name": opportunity.name,
                }
            )

    gates: list[ProgressionGate] = []
    for gate in integration.progression_gates:
        unlocked = gate_is_open(gate, character)
        if unlocked and not gate.is_unlocked:
            side_effects.append({"type": "gate_unlocked", "gate_id": gate.gate_id})
        gates.append(evolve(gate, is_unlocked=unlocked))

    updated = evolve(
        arc,
        integration_points=evolve(
            arc.integration_points,
            progression=evolve(integration, progression_gates=tuple(gates)),
        ),
    )
    return IntegrationResult(kind=ADAPTER_NAME, updated_arc=updated, side_effects=side_effects)
