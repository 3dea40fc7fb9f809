from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from storyarc.modules.arc.schemas import Arc

NarrativeStyle = Literal["action", "character_driven", "mystery", "political", "romantic"]


class CharacterSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    level: int = Field(default=1, ge=1)
    experience_points: int = Field(default=0, ge=0)
    health: float = Field(default=100.0, ge=0.0)
    max_health: float = Field(default=100.0, gt=0.0)
    mana: float | None = Field(default=None, ge=0.0)
    max_mana: float | None = Field(default=None, gt=0.0)
    currency: int = Field(default=0, ge=0)
    skills: tuple[str, ...] = ()
    attributes: dict[str, int] = Field(default_factory=dict)


class NPCRelationship(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    npc_id: str
    name: str = ""
    relationship_score: int = Field(default=0, ge=-100, le=100)


class FactionStanding(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    faction_id: str
    reputation_score: int = Field(default=0, ge=-100, le=100)


class PlayerChoiceRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    turn_id: str = ""
    choice_text: str


class WorldStateSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    current_location: str = "Unknown"
    threat_level: int = Field(default=1, ge=1, le=10)
    npc_relationships: tuple[NPCRelationship, ...] = ()
    faction_standings: tuple[FactionStanding, ...] = ()
    player_choices: tuple[PlayerChoiceRecord, ...] = ()
    world_events: tuple[str, ...] = ()


class PlayerPreferences(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    preferred_themes: tuple[str, ...] = ()
    preferred_difficulty: int = Field(default=5, ge=1, le=10)
    preferred_pacing: Literal["slow", "moderate", "fast"] = "moderate"
    preferred_choice_complexity: Literal["simple", "moderate", "complex"] = "moderate"
    preferred_narrative_style: NarrativeStyle | None = None
    avoided_elements: tuple[str, ...] = ()
    favorite_character_types: tuple[str, ...] = ()


class WorldContext(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    current_location: str = Field(min_length=1)
    available_locations: tuple[str, ...] = ()
    active_npcs: tuple[str, ...] = ()
    world_events: tuple[str, ...] = ()
    political_situation: str = ""
    economic_state: str = ""
    cultural_context: str = ""
    threat_level: int = Field(default=1, ge=1, le=10)


class NarrativeGoals(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    primary_goal: str = ""
    secondary_goals: tuple[str, ...] = ()
    character_development_targets: tuple[str, ...] = ()
    relationship_targets: tuple[str, ...] = ()
    world_building_targets: tuple[str, ...] = ()
    thematic_targets: tuple[str, ...] = ()


class ArcGenerationInput(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    series_name: str = Field(min_length=1)
    series_context: str = ""
    character: CharacterSnapshot
    story_state: WorldStateSnapshot = Field(default_factory=WorldStateSnapshot)
    previous_arcs: tuple[Arc, ...] = ()
    player_preferences: PlayerPreferences = Field(default_factory=PlayerPreferences)
    world_state: WorldContext
    narrative_goals: NarrativeGoals = Field(default_factory=NarrativeGoals)

    @model_validator(mode="after")
    def validate_previous_arcs_owner(self):
        for arc in self.previous_arcs:
            if arc.character_id != self.character.id:
                raise ValueError("previous arcs must belong to the generating character")
        return self
