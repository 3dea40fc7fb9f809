from __future__ import annotations

from storyarc.modules.arc.errors import IntegrationError
from storyarc.modules.arc.events import RelationshipEvent
from storyarc.modules.arc.models import IntegrationResult
from storyarc.modules.arc.schemas import Arc, SocialDynamic, evolve
from storyarc.modules.arc.snapshots import CharacterSnapshot, WorldStateSnapshot
from storyarc.modules.integration.conditions import evaluate_unlock_condition

ADAPTER_NAME = "relationship"
INFLUENCE_STEP = 5.0
REPUTATION_MIN = -100
REPUTATION_MAX = 100

_DYNAMIC_STATE = {"positive": "improving", "negative": "strained"}


def clamp_reputation(value: int) -> int:
    return max(REPUTATION_MIN, min(REPUTATION_MAX, int(value)))


def _shift_dynamic(dynamic: SocialDynamic, event: RelationshipEvent) -> SocialDynamic:
    if event.npc_id not in dynamic.participants or event.sentiment == "neutral":
        return dynamic
    step = INFLUENCE_STEP if event.sentiment == "positive" else -INFLUENCE_STEP
    return evolve(
        dynamic,
        current_state=_DYNAMIC_STATE[event.sentiment],
        player_influence=max(0.0, min(100.0, dynamic.player_influence + step)),
    )


def integrate_relationship(
    arc: Arc,
    event: RelationshipEvent,
    character: CharacterSnapshot,
    world: WorldStateSnapshot,
) -> IntegrationResult:
    if getattr(event, "kind", None) != "relationship_event":
        raise IntegrationError(adapter=ADAPTER_NAME, event_kind=str(getattr(event, "kind", type(event).__name__)))

    side_effects: list[dict] = []
    if event.faction_id:
        current = next(
            (standing.reputation_score for standing in world.faction_standings if standing.faction_id == event.faction_id),
            0,
        )
        side_effects.append(
            {
                "type": "reputation_change",
                "faction_id": event.faction_id,
                "reputation_score": clamp_reputation(current + event.reputation_delta),
            }
        )

    integration = arc.integration_points.relationship
    if integration is None:
        return IntegrationResult(kind=ADAPTER_NAME, updated_arc=arc, side_effects=side_effects)

    phase = arc.current_phase
    for relationship in integration.key_relationships:
        side_effects.append(
            {
                "type": "relationship_impact",
                "npc_id": relationship.npc_id,
                "direct": relationship.npc_id == event.npc_id,
                "importance": relationship.importance,
                "phase_relevance": phase.name if phase is not None else "unknown",
                "development_opportunity": "growth" if event.sentiment == "positive" else "challenge",
            }
        )

    dynamics = tuple(_shift_dynamic(dynamic, event) for dynamic in integration.social_dynamics)
    for before, after in zip(integration.social_dynamics, dynamics):
        if after is not before:
            side_effects.append(
                {
                    "type": "social_dynamic",
                    "dynamic_id": after.dynamic_id,
                    "current_state": after.current_state,
                    "player_influence": after.player_influence,
                }
            )

    for beat in integration.emotional_beats:
        if evaluate_unlock_condition(beat.trigger, arc, character, world):
            side_effects.append({"type": "emotional_beat", "beat_id": beat.beat_id, "description": beat.description})

    updated = evolve(
        arc,
        integration_points=evolve(
            arc.integration_points,
            relationship=evolve(integration, social_dynamics=dynamics),
        ),
    )
    return IntegrationResult(kind=ADAPTER_NAME, updated_arc=updated, side_effects=side_effects)
