from __future__ import annotations

import math

from storyarc.config import Settings, settings as default_settings
from storyarc.modules.arc.errors import IntegrationError
from storyarc.modules.arc.events import CombatResultEvent
from storyarc.modules.arc.models import IntegrationResult
from storyarc.modules.arc.schemas import Arc, ArcImpact, CombatConsequence, evolve
from storyarc.modules.arc.snapshots import CharacterSnapshot, WorldStateSnapshot
from storyarc.modules.progression.engine import update_arc_state

ADAPTER_NAME = "combat"
COMBAT_BASE_EXPERIENCE = 50
DEFEAT_FLAG = "combat_defeat"

_STORY_IMPORTANCE = {
    "climax": "climactic",
    "rising_action": "major",
    "falling_action": "moderate",
}


def story_importance(narrative_weight: str) -> str:
    return _STORY_IMPORTANCE.get(narrative_weight, "minor")


def combat_experience_bonus(arc: Arc) -> int:
    phase = arc.current_phase
    narrative_multiplier = 2 if phase is not None and phase.narrative_weight == "climax" else 1
    return math.floor(COMBAT_BASE_EXPERIENCE * (arc.difficulty / 5.0) * narrative_multiplier)


def _scaling_effect(arc: Arc) -> dict:
    scaling = arc.integration_points.combat.combat_scaling
    factor = scaling.scaling_factor * (arc.difficulty / 5.0)
    return {
        "type": "difficulty_scaling",
        "adjusted_enemy_level": max(1, math.floor(scaling.base_enemy_level * factor)),
        "scaling_factor": factor,
        "reason": f"Arc difficulty: {arc.difficulty:g}",
    }


def _narrative_context(arc: Arc) -> dict | None:
    phase = arc.current_phase
    if phase is None:
        return None
    return {
        "type": "narrative_context",
        "phase_context": phase.name,
        "narrative_weight": phase.narrative_weight,
        "story_importance": story_importance(phase.narrative_weight),
        "description": f"This combat occurs during the {phase.name} phase of {arc.title}, {phase.description.lower()}",
    }


def _quest_consequence(arc: Arc, event: CombatResultEvent, character: CharacterSnapshot) -> dict:
    if event.victory:
        return {
            "type": "quest_consequence",
            "description": "Combat victory advances arc progression",
            "category": "progression",
            "effects": [
                {
                    "type": "experience",
                    "target_id": character.id,
                    "value": combat_experience_bonus(arc),
                    "description": "Experience gained from narrative combat",
                }
            ],
            "timing": "immediate",
            "scope": "character",
            "reversible": False,
        }
    return {
        "type": "quest_consequence",
        "description": "Combat defeat creates narrative tension",
        "category": "setback",
        "effects": [
            {
                "type": "narrative_flag",
                "target_id": arc.id,
                "value": DEFEAT_FLAG,
                "description": "Combat defeat affects story progression",
            }
        ],
        "timing": "immediate",
        "scope": "arc",
        "reversible": True,
    }


def integrate_combat(
    arc: Arc,
    event: CombatResultEvent,
    character: CharacterSnapshot,
    world: WorldStateSnapshot,
    *,
    turn_id: str = "",
    cfg: Settings | None = None,
) -> IntegrationResult:
    if getattr(event, "kind", None) != "combat_result":
        raise IntegrationError(adapter=ADAPTER_NAME, event_kind=str(getattr(event, "kind", type(event).__name__)))
    cfg = cfg or default_settings
    integration = arc.integration_points.combat
    if integration is None:
        return IntegrationResult(kind=ADAPTER_NAME, updated_arc=arc)

    side_effects = [_scaling_effect(arc)]
    context = _narrative_context(arc)
    if context is not None:
        side_effects.append(context)
    side_effects.append(_quest_consequence(arc, event, character))

    phase = arc.current_phase
    outcome = "victory" if event.victory else "defeat"
    consequence = CombatConsequence(
        combat_outcome=outcome,
        turn_id=turn_id,
        arc_impact=ArcImpact(
            scope="arc" if phase is not None and phase.narrative_weight == "climax" else "local",
            magnitude=event.significance,
            duration="temporary",
            description=f"Combat {outcome} affects arc progression",
        ),
        narrative_changes=("Player gains confidence" if event.victory else "Player faces setback",),
    )
    consequences = (*integration.combat_consequences, consequence)[-cfg.combat_consequence_limit :]
    updated = evolve(
        arc,
        integration_points=evolve(
            arc.integration_points,
            combat=evolve(integration, combat_consequences=consequences),
        ),
    )
    # A later victory reverses the defeat flag.
    if not event.victory or updated.state_tracking.flags.get(DEFEAT_FLAG):
        updated = update_arc_state(
            updated,
            {DEFEAT_FLAG: not event.victory},
            turn_id=turn_id,
            trigger=f"combat_{outcome}",
            cfg=cfg,
        )
    return IntegrationResult(kind=ADAPTER_NAME, updated_arc=updated, side_effects=side_effects)
