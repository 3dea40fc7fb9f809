from __future__ import annotations

from storyarc.modules.arc.defaults import new_arc
from storyarc.modules.arc.schemas import Arc, ArcObjective, ArcPhase, evolve
from storyarc.modules.arc.snapshots import (
    ArcGenerationInput,
    CharacterSnapshot,
    PlayerChoiceRecord,
    WorldContext,
    WorldStateSnapshot,
)


def make_character(**overrides) -> CharacterSnapshot:
    data = {
        "id": "hero-1",
        "name": "Mira",
        "level": 5,
        "experience_points": 0,
        "health": 100.0,
        "max_health": 100.0,
        "currency": 100,
    }
    data.update(overrides)
    return CharacterSnapshot.model_validate(data)


def make_world(*, choices: tuple[str, ...] = (), **overrides) -> WorldStateSnapshot:
    data = {"player_choices": tuple(PlayerChoiceRecord(choice_text=text) for text in choices)}
    data.update(overrides)
    return WorldStateSnapshot.model_validate(data)


def make_generation_input(**overrides) -> ArcGenerationInput:
    data = {
        "series_name": "Ashford Chronicles",
        "character": make_character(),
        "world_state": WorldContext(current_location="Ashford"),
    }
    data.update(overrides)
    return ArcGenerationInput.model_validate(data)


def make_phases(arc_id: str, weights: tuple[str, ...] = ("setup", "climax")) -> tuple[ArcPhase, ...]:
    phases = []
    for order, weight in enumerate(weights, start=1):
        phase_id = f"{arc_id}:p{order}"
        phases.append(
            ArcPhase(
                id=phase_id,
                name=f"Phase {order}",
                description=f"Phase {order} of the arc",
                order=order,
                narrative_weight=weight,
                objectives=(ArcObjective(id=f"{phase_id}:o1", description=f"Finish phase {order}"),),
                estimated_duration=2,
            )
        )
    return tuple(phases)


def make_arc(
    arc_id: str = "arc-1",
    *,
    character_id: str = "hero-1",
    order: int = 1,
    weights: tuple[str, ...] = ("setup", "climax"),
    status: str = "active",
    **fields,
) -> Arc:
    fields.setdefault("phases", make_phases(arc_id, weights))
    return new_arc(
        arc_id=arc_id,
        character_id=character_id,
        title=f"Arc {arc_id}",
        order=order,
        status=status,
        **fields,
    )


def with_metrics(arc: Arc, **changes) -> Arc:
    progression = arc.progression
    return evolve(arc, progression=evolve(progression, metrics=evolve(progression.metrics, **changes)))


def with_current_phase(arc: Arc, phase_id: str) -> Arc:
    return evolve(arc, progression=evolve(arc.progression, current_phase_id=phase_id))
