from __future__ import annotations

from storyarc.modules.arc.errors import IntegrationError
from storyarc.modules.arc.events import QuestEvent
from storyarc.modules.arc.models import IntegrationResult
from storyarc.modules.arc.schemas import Arc, evolve
from storyarc.modules.arc.snapshots import CharacterSnapshot, WorldStateSnapshot
from storyarc.modules.integration.conditions import any_condition_met, evaluate_unlock_condition
from storyarc.modules.progression.engine import record_objective_outcome

ADAPTER_NAME = "quest"

_OBJECTIVE_STATUS = {
    "started": "in_progress",
    "progressed": "in_progress",
    "completed": "completed",
    "failed": "failed",
}


def integrate_quest(
    arc: Arc,
    event: QuestEvent,
    character: CharacterSnapshot,
    world: WorldStateSnapshot,
    *,
    turn_id: str = "",
) -> IntegrationResult:
    if getattr(event, "kind", None) != "quest_event":
        raise IntegrationError(adapter=ADAPTER_NAME, event_kind=str(getattr(event, "kind", type(event).__name__)))

    side_effects: list[dict] = []
    updated = arc
    if event.objective_id:
        updated = record_objective_outcome(
            updated,
            event.objective_id,
            _OBJECTIVE_STATUS[event.event],
            turn_id=turn_id,
            progress=event.progress,
        )
        side_effects.append(
            {
                "type": "objective_update",
                "objective_id": event.objective_id,
                "status": _OBJECTIVE_STATUS[event.event],
                "current_phase_id": updated.progression.current_phase_id,
            }
        )

    integration = updated.integration_points.quest
    if integration is None:
        return IntegrationResult(kind=ADAPTER_NAME, updated_arc=updated, side_effects=side_effects)

    for modification in integration.quest_modifications:
        if modification.quest_id not in (None, event.quest_id):
            continue
        if evaluate_unlock_condition(modification.trigger, updated, character, world):
            side_effects.append(
                {
                    "type": "quest_modification",
                    "modification_id": modification.modification_id,
                    "quest_id": event.quest_id,
                    "description": modification.description,
                }
            )
    for objective in integration.dynamic_objectives:
        if any_condition_met(objective.adaptation_triggers, updated, character, world):
            side_effects.append(
                {
                    "type": "dynamic_objective",
                    "objective_id": objective.objective_id,
                    "description": objective.description,
                }
            )

    chaining = integration.quest_chaining
    if event.quest_id not in chaining.quest_sequence:
        chaining = evolve(chaining, quest_sequence=(*chaining.quest_sequence, event.quest_id))
        updated = evolve(
            updated,
            integration_points=evolve(
                updated.integration_points,
                quest=evolve(integration, quest_chaining=chaining),
            ),
        )
        side_effects.append({"type": "quest_chained", "quest_id": event.quest_id, "chain_id": chaining.chain_id})
    return IntegrationResult(kind=ADAPTER_NAME, updated_arc=updated, side_effects=side_effects)
