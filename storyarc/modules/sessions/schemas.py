import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from storyarc.modules.arc.events import UpdateEvent
from storyarc.modules.arc.snapshots import CharacterSnapshot, WorldStateSnapshot


class SessionCreateOut(BaseModel):
    session_id: uuid.UUID
    created_at: datetime
    active_arcs: int = 0


class ArcUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    turn_id: str = Field(min_length=1)
    character: CharacterSnapshot
    world_state: WorldStateSnapshot = Field(default_factory=WorldStateSnapshot)
    event: UpdateEvent


class ArcCompleteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    character: CharacterSnapshot
    world_state: WorldStateSnapshot = Field(default_factory=WorldStateSnapshot)
    summary: str = ""


class SupportResponseRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    support_type: str = Field(min_length=1)
    effectiveness: float = Field(ge=0.0, le=1.0)


class LearningRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    behavior: str = Field(min_length=1)
    outcome: Literal["success", "failure"]


class SnapshotImportRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: int = 1
    exported_at: str | None = None
    active: list[dict[str, Any]] = Field(default_factory=list)
    history: list[dict[str, Any]] = Field(default_factory=list)
    metrics: dict[str, Any] = Field(default_factory=dict)
