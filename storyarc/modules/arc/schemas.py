from __future__ import annotations

from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

NarrativeWeight = Literal["setup", "rising_action", "climax", "falling_action", "resolution"]
ObjectiveStatus = Literal["not_started", "in_progress", "completed", "failed"]
ThresholdSeverity = Literal["warning", "concern", "critical", "failure"]
SupportLevel = Literal["minimal", "moderate", "high", "maximum"]
ArcStatus = Literal["created", "active", "completing", "completed"]
ConsequenceWeight = Literal["light", "moderate", "heavy"]
ConditionType = Literal["arc_progress", "character_level", "choice_made"]
RecoveryType = Literal["guidance", "difficulty_reduction", "resource_boost", "narrative_intervention", "alternative_path"]
RecoveryCostType = Literal["none", "time", "narrative_consequence", "resource", "reputation"]

SUPPORT_LEVELS: tuple[str, ...] = ("minimal", "moderate", "high", "maximum")
DIFFICULTY_MIN = 1.0
DIFFICULTY_MAX = 10.0


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, float(value)))


class ArcModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


_M = TypeVar("_M", bound=BaseModel)


def evolve(model: _M, **changes: Any) -> _M:
    """Return a validated copy of ``model`` with ``changes`` applied.

    ``model_copy(update=...)`` skips validation, so clamps and ordering
    checks would not run; rebuilding through ``model_validate`` keeps every
    derived snapshot inside its documented bounds.
    """
    data = {name: getattr(model, name) for name in type(model).model_fields}
    data.update(changes)
    return type(model).model_validate(data)


class UnlockCondition(ArcModel):
    type: ConditionType
    value: int | float | str


class ArcObjective(ArcModel):
    id: str
    description: str
    type: Literal["primary", "optional"] = "primary"
    status: ObjectiveStatus = "not_started"
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    requirements: tuple[str, ...] = ()
    rewards: tuple[str, ...] = ()


class ArcPhase(ArcModel):
    id: str
    name: str
    description: str = ""
    order: int = Field(ge=1)
    narrative_weight: NarrativeWeight
    objectives: tuple[ArcObjective, ...] = ()
    estimated_duration: int = Field(default=3, ge=0)
    difficulty_modifier: float = 0.0


class ArcMilestone(ArcModel):
    id: str
    title: str
    phase_id: str
    achieved_at_turn: str | None = None


class ArcPlayerChoice(ArcModel):
    id: str
    turn_id: str
    timestamp: str
    phase_id: str | None = None
    choice_text: str
    choice_description: str = ""
    alternatives: tuple[str, ...] = ()
    consequences: tuple[str, ...] = ()
    impact_scope: Literal["local", "phase", "arc"] = "phase"
    moral_alignment: str = "neutral"
    difficulty_influence: float = 0.0
    agency_score: float = Field(default=5.0, ge=0.0, le=10.0)
    narrative_weight: float = Field(default=5.0, ge=0.0, le=10.0)


class ProgressionMetrics(ArcModel):
    total_choices_made: int = Field(default=0, ge=0)
    significant_choices: int = Field(default=0, ge=0)
    player_agency_average: float = 0.0
    difficulty_adjustments: int = Field(default=0, ge=0)
    objectives_completed: int = Field(default=0, ge=0)
    objectives_failed: int = Field(default=0, ge=0)
    milestones_achieved: int = Field(default=0, ge=0)
    branches_explored: tuple[str, ...] = ()
    time_spent: int = Field(default=0, ge=0)
    efficiency_score: float = Field(default=5.0, ge=0.0, le=10.0)


class ArcProgression(ArcModel):
    current_phase_id: str | None = None
    phase_progress: float = Field(default=0.0, ge=0.0, le=100.0)
    total_progress: float = Field(default=0.0, ge=0.0, le=100.0)
    milestones: tuple[ArcMilestone, ...] = ()
    player_choice_history: tuple[ArcPlayerChoice, ...] = ()
    metrics: ProgressionMetrics = Field(default_factory=ProgressionMetrics)


class DifficultyAdjustment(ArcModel):
    timestamp: str
    turn_id: str
    old_difficulty: float
    new_difficulty: float
    reason: str
    triggered_by: str = "adaptive_scaling"


class DifficultySettings(ArcModel):
    base_difficulty: float = 5.0
    current_difficulty: float = 5.0
    adaptive_scaling: bool = True
    player_performance_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    difficulty_history: tuple[DifficultyAdjustment, ...] = ()

    @field_validator("base_difficulty", "current_difficulty")
    @classmethod
    def clamp_difficulty(cls, value: float) -> float:
        return _clamp(value, DIFFICULTY_MIN, DIFFICULTY_MAX)


class ChoiceQuality(ArcModel):
    average_alternatives: float = 3.0
    consequence_clarity: float = 5.0
    choice_relevance: float = 5.0
    moral_complexity: float = 3.0
    strategic_depth: float = 4.0


class PlayerAgencyMetrics(ArcModel):
    overall_agency_score: float = 50.0
    choice_quality: ChoiceQuality = Field(default_factory=ChoiceQuality)
    impactful_decisions: int = Field(default=0, ge=0)
    meaningful_alternatives: int = Field(default=0, ge=0)
    player_initiated_actions: int = Field(default=0, ge=0)

    @field_validator("overall_agency_score")
    @classmethod
    def clamp_agency(cls, value: float) -> float:
        return _clamp(value, 0.0, 100.0)


class FailureThreshold(ArcModel):
    metric: str
    threshold: float = Field(ge=0.0, le=1.0)
    severity: ThresholdSeverity
    action: str = "warn_player"


class RecoveryCost(ArcModel):
    type: RecoveryCostType
    amount: float = Field(default=0.0, ge=0.0)
    description: str = ""


class RecoveryOption(ArcModel):
    id: str
    name: str
    description: str
    recovery_type: RecoveryType
    trigger_conditions: tuple[str, ...] = ()
    cost: RecoveryCost
    effectiveness: float = Field(ge=0.0, le=100.0)
    narrative_integration: str = ""
    player_choice_required: bool = True


class SupportTracking(ArcModel):
    support_type: str
    times_offered: int = Field(default=0, ge=0)
    times_accepted: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.5, ge=0.0, le=1.0)


class AdaptiveSupport(ArcModel):
    support_level: SupportLevel = "moderate"
    support_types: tuple[str, ...] = ()
    effectiveness_tracking: tuple[SupportTracking, ...] = ()


class PlayerPattern(ArcModel):
    behavior: str
    attempts: int = Field(default=0, ge=0)
    successes: int = Field(default=0, ge=0)
    failures: int = Field(default=0, ge=0)


class AdaptiveHint(ArcModel):
    behavior: str
    message: str


class SkillGap(ArcModel):
    behavior: str
    failure_share: float = Field(ge=0.0, le=1.0)
    samples: int = Field(ge=0)


class LearningSystem(ArcModel):
    patterns: tuple[PlayerPattern, ...] = ()
    hints: tuple[AdaptiveHint, ...] = ()
    skill_gaps: tuple[SkillGap, ...] = ()


class FailureRecoveryConfig(ArcModel):
    failure_thresholds: tuple[FailureThreshold, ...] = ()
    recovery_options: tuple[RecoveryOption, ...] = ()
    adaptive_support: AdaptiveSupport = Field(default_factory=AdaptiveSupport)
    learning_system: LearningSystem = Field(default_factory=LearningSystem)


# --- integration points ---


class CombatScaling(ArcModel):
    base_enemy_level: int = Field(default=1, ge=1)
    scaling_factor: float = Field(default=1.0, gt=0.0)


class ArcImpact(ArcModel):
    scope: Literal["local", "phase", "arc"] = "local"
    magnitude: int = Field(default=3, ge=1, le=10)
    duration: Literal["temporary", "lasting", "permanent"] = "temporary"
    description: str = ""


class CombatConsequence(ArcModel):
    combat_outcome: Literal["victory", "defeat"]
    turn_id: str
    arc_impact: ArcImpact
    narrative_changes: tuple[str, ...] = ()


class CombatIntegration(ArcModel):
    combat_scaling: CombatScaling = Field(default_factory=CombatScaling)
    combat_consequences: tuple[CombatConsequence, ...] = ()


class ExperienceScaling(ArcModel):
    base_experience_multiplier: float = Field(default=1.0, ge=0.0)
    difficulty_bonus: float = Field(default=0.1, ge=0.0)
    choice_quality_bonus: float = Field(default=0.05, ge=0.0)
    phase_completion_bonus: int = Field(default=100, ge=0)


class SkillUnlock(ArcModel):
    skill_id: str
    name: str
    unlock_conditions: tuple[UnlockCondition, ...] = ()


class SpecializationOpportunity(ArcModel):
    specialization_id: str
    name: str
    unlock_conditions: tuple[UnlockCondition, ...] = ()


class ProgressionGate(ArcModel):
    gate_id: str
    required_level: int = Field(default=1, ge=1)
    required_skills: tuple[str, ...] = ()
    required_attributes: dict[str, int] = Field(default_factory=dict)
    is_unlocked: bool = False


class ProgressionIntegration(ArcModel):
    experience_scaling: ExperienceScaling = Field(default_factory=ExperienceScaling)
    skill_unlocks: tuple[SkillUnlock, ...] = ()
    specialization_opportunities: tuple[SpecializationOpportunity, ...] = ()
    progression_gates: tuple[ProgressionGate, ...] = ()


class QuestModification(ArcModel):
    modification_id: str
    quest_id: str | None = None
    description: str = ""
    trigger: UnlockCondition


class DynamicObjective(ArcModel):
    objective_id: str
    description: str
    adaptation_triggers: tuple[UnlockCondition, ...] = ()


class QuestChaining(ArcModel):
    chain_id: str
    quest_sequence: tuple[str, ...] = ()


class QuestIntegration(ArcModel):
    quest_modifications: tuple[QuestModification, ...] = ()
    dynamic_objectives: tuple[DynamicObjective, ...] = ()
    quest_chaining: QuestChaining


class KeyItem(ArcModel):
    item_id: str
    name: str
    unlock_conditions: tuple[UnlockCondition, ...] = ()


class CraftingOpportunity(ArcModel):
    recipe_id: str
    name: str
    unlock_conditions: tuple[UnlockCondition, ...] = ()


class EquipmentTier(ArcModel):
    tier: int = Field(ge=1)
    name: str
    unlock_conditions: tuple[UnlockCondition, ...] = ()


class EquipmentProgression(ArcModel):
    equipment_id: str
    progression_path: tuple[EquipmentTier, ...] = ()
    current_tier: int = Field(default=0, ge=0)


class InventoryIntegration(ArcModel):
    key_items: tuple[KeyItem, ...] = ()
    crafting_opportunities: tuple[CraftingOpportunity, ...] = ()
    equipment_progression: tuple[EquipmentProgression, ...] = ()


class KeyRelationship(ArcModel):
    npc_id: str
    role: str = "ally"
    importance: int = Field(default=5, ge=1, le=10)


class SocialDynamic(ArcModel):
    dynamic_id: str
    participants: tuple[str, ...] = ()
    current_state: str = "stable"
    player_influence: float = Field(default=50.0, ge=0.0, le=100.0)


class EmotionalBeat(ArcModel):
    beat_id: str
    description: str
    trigger: UnlockCondition


class RelationshipIntegration(ArcModel):
    key_relationships: tuple[KeyRelationship, ...] = ()
    social_dynamics: tuple[SocialDynamic, ...] = ()
    emotional_beats: tuple[EmotionalBeat, ...] = ()


class IntegrationPoints(ArcModel):
    combat: CombatIntegration | None = None
    progression: ProgressionIntegration | None = None
    quest: QuestIntegration | None = None
    inventory: InventoryIntegration | None = None
    relationship: RelationshipIntegration | None = None


# --- narrative structure ---


class ArcStateSnapshot(ArcModel):
    turn_id: str
    trigger_event: str
    flags: dict[str, Any] = Field(default_factory=dict)


class ArcStateTracking(ArcModel):
    flags: dict[str, Any] = Field(default_factory=dict)
    history: tuple[ArcStateSnapshot, ...] = ()


class BranchingPath(ArcModel):
    path_id: str
    name: str
    description: str = ""
    condition: UnlockCondition


class AlternativeEnding(ArcModel):
    ending_id: str
    title: str
    tone: Literal["triumphant", "bittersweet", "tragic", "open"]
    min_agency_score: float = Field(default=0.0, ge=0.0, le=100.0)


class KeyDecisionPoint(ArcModel):
    decision_id: str
    phase_id: str
    prompt: str


class Arc(ArcModel):
    id: str
    character_id: str
    title: str
    description: str = ""
    order: int = Field(ge=1)
    status: ArcStatus = "created"
    is_completed: bool = False
    completion_summary: str | None = None
    thematic_tags: tuple[str, ...] = ()
    consequence_weight: ConsequenceWeight = "moderate"
    player_choice_influence: float = Field(default=75.0, ge=0.0, le=100.0)
    main_quest_ids: tuple[str, ...] = ()
    unlock_conditions: tuple[str, ...] = ()
    conflicting_factions: tuple[str, ...] = ()
    phases: tuple[ArcPhase, ...] = ()
    progression: ArcProgression = Field(default_factory=ArcProgression)
    difficulty_settings: DifficultySettings = Field(default_factory=DifficultySettings)
    player_agency_metrics: PlayerAgencyMetrics = Field(default_factory=PlayerAgencyMetrics)
    integration_points: IntegrationPoints = Field(default_factory=IntegrationPoints)
    failure_recovery: FailureRecoveryConfig = Field(default_factory=FailureRecoveryConfig)
    state_tracking: ArcStateTracking = Field(default_factory=ArcStateTracking)
    branching_paths: tuple[BranchingPath, ...] = ()
    alternative_endings: tuple[AlternativeEnding, ...] = ()
    key_decision_points: tuple[KeyDecisionPoint, ...] = ()

    @model_validator(mode="after")
    def validate_phase_order(self):
        previous = 0
        for phase in self.phases:
            if phase.order <= previous:
                raise ValueError("phase order must be strictly increasing")
            previous = phase.order
        current = self.progression.current_phase_id
        if current is not None and self.phases and current not in {phase.id for phase in self.phases}:
            raise ValueError("current phase must belong to the arc")
        if self.is_completed != (self.status == "completed"):
            raise ValueError("is_completed must match completed status")
        return self

    @property
    def current_phase(self) -> ArcPhase | None:
        current = self.progression.current_phase_id
        for phase in self.phases:
            if phase.id == current:
                return phase
        return None

    @property
    def difficulty(self) -> float:
        return self.difficulty_settings.current_difficulty

    @property
    def agency_score(self) -> float:
        return self.player_agency_metrics.overall_agency_score

    def all_objectives(self) -> list[ArcObjective]:
        return [objective for phase in self.phases for objective in phase.objectives]


class ArcQualityMetrics(ArcModel):
    narrative_depth: float = Field(ge=1.0, le=10.0)
    player_agency_potential: float = Field(ge=1.0, le=10.0)
    system_integration: float = Field(ge=1.0, le=10.0)
    thematic_consistency: float = Field(ge=1.0, le=10.0)
    difficulty_balance: float = Field(ge=1.0, le=10.0)
    replayability: float = Field(ge=1.0, le=10.0)
    overall_quality: float = Field(ge=1.0, le=10.0)


class GlobalArcMetrics(ArcModel):
    total_arcs_created: int = 0
    total_arcs_completed: int = 0
    total_updates: int = 0
    failed_updates: int = 0
    average_arc_duration: float = 0.0
    average_player_satisfaction: float = 0.0
    average_difficulty_rating: float = 5.0
    average_agency_score: float = 50.0
    system_integration_score: float = 0.0
    failure_recovery_success_rate: float = 0.0
    support_responses: int = 0
    support_acceptances: int = 0
