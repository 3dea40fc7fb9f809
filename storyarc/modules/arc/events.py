from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class PlayerChoiceEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["player_choice"] = "player_choice"
    choice_text: str = Field(min_length=1)
    choice_description: str = ""
    alternatives: tuple[str, ...] = ()
    consequences: tuple[str, ...] = ()
    impact_scope: Literal["local", "phase", "arc"] = "phase"
    moral_alignment: str = "neutral"
    difficulty_influence: float = 0.0
    agency_score: float = Field(default=5.0, ge=0.0, le=10.0)
    narrative_weight: float = Field(default=5.0, ge=0.0, le=10.0)


class CombatResultEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["combat_result"] = "combat_result"
    victory: bool
    significance: int = Field(default=3, ge=1, le=10)
    enemy_ids: tuple[str, ...] = ()


class QuestEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["quest_event"] = "quest_event"
    quest_id: str = Field(min_length=1)
    event: Literal["started", "progressed", "completed", "failed"]
    objective_id: str | None = None
    progress: float | None = Field(default=None, ge=0.0, le=100.0)


class ProgressionEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["progression_event"] = "progression_event"
    event_type: str = "experience_gained"
    experience_gained: int = Field(default=0, ge=0)


class RelationshipEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["relationship_event"] = "relationship_event"
    npc_id: str = Field(min_length=1)
    sentiment: Literal["positive", "negative", "neutral"] = "neutral"
    faction_id: str | None = None
    reputation_delta: int = 0


class InventoryEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["inventory_event"] = "inventory_event"
    item_id: str = Field(min_length=1)
    action: Literal["acquired", "used", "lost", "crafted"] = "acquired"


UpdateEvent = Annotated[
    Union[
        PlayerChoiceEvent,
        CombatResultEvent,
        QuestEvent,
        ProgressionEvent,
        RelationshipEvent,
        InventoryEvent,
    ],
    Field(discriminator="kind"),
]

_update_event_adapter: TypeAdapter = TypeAdapter(UpdateEvent)


def parse_update_event(raw: object) -> UpdateEvent:
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    return _update_event_adapter.validate_python(raw)
