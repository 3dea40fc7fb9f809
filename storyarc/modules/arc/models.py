from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from storyarc.modules.arc.schemas import Arc, ArcQualityMetrics, RecoveryOption, ThresholdSeverity

RecommendationKind = Literal["immediate", "short_term", "long_term"]


@dataclass(slots=True, frozen=True)
class FailureMetrics:
    objective_failure_rate: float
    time_efficiency: float
    resource_depletion: float
    relationship_stress: float
    frustration_indicator: float
    difficulty_mismatch: float

    def as_dict(self) -> dict[str, float]:
        return {
            "objective_failure_rate": self.objective_failure_rate,
            "time_efficiency": self.time_efficiency,
            "resource_depletion": self.resource_depletion,
            "relationship_stress": self.relationship_stress,
            "frustration_indicator": self.frustration_indicator,
            "difficulty_mismatch": self.difficulty_mismatch,
        }


@dataclass(slots=True, frozen=True)
class DetectedFailure:
    metric: str
    current_value: float
    threshold: float
    severity: ThresholdSeverity
    description: str
    suggested_actions: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class DetectedWarning:
    metric: str
    current_value: float
    threshold: float
    description: str
    preventive_actions: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class FailureRecommendation:
    kind: RecommendationKind
    action: str
    description: str
    priority: int
    estimated_effectiveness: int


@dataclass(slots=True, frozen=True)
class FailureDetectionResult:
    failures: tuple[DetectedFailure, ...]
    warnings: tuple[DetectedWarning, ...]
    recommendations: tuple[FailureRecommendation, ...]
    metrics: FailureMetrics

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


@dataclass(slots=True)
class IntegrationResult:
    kind: str
    updated_arc: Arc
    side_effects: list[dict[str, Any]] = field(default_factory=list)


@dataclass(slots=True)
class NarrativeDraft:
    title: str
    description: str
    phase_descriptions: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class ArcGenerationResult:
    arc: Arc
    archetype: str
    generation_reasoning: str
    adaptation_notes: list[str]
    integration_suggestions: list[str]
    quality_metrics: ArcQualityMetrics


@dataclass(slots=True)
class ArcCreationResult:
    success: bool
    arc: Arc | None = None
    generation: ArcGenerationResult | None = None
    error: str | None = None
    error_code: str | None = None


@dataclass(slots=True)
class ArcUpdateResult:
    success: bool
    updated_arc: Arc | None = None
    update_results: list[dict[str, Any]] = field(default_factory=list)
    failure_detection: FailureDetectionResult | None = None
    recovery_options: list[RecoveryOption] = field(default_factory=list)
    error: str | None = None
    error_code: str | None = None


@dataclass(slots=True)
class CompletionReward:
    type: Literal["experience", "skill_points", "currency"]
    amount: int
    description: str


@dataclass(slots=True)
class FinalArcMetrics:
    total_duration: int
    final_agency_score: float
    final_difficulty: float
    objectives_completed: int
    objectives_failed: int
    efficiency_score: float
    milestones_achieved: int
    player_satisfaction: float


@dataclass(slots=True)
class ArcCompletionResult:
    success: bool
    completed_arc: Arc | None = None
    final_metrics: FinalArcMetrics | None = None
    rewards: list[CompletionReward] = field(default_factory=list)
    next_arc_suggestions: list[str] = field(default_factory=list)
    error: str | None = None
    error_code: str | None = None


@dataclass(slots=True)
class ArcAnalytics:
    arc_id: str
    is_completed: bool
    status: str
    progress: float
    difficulty: float
    agency_score: float
    efficiency_score: float
    quality_score: float
    player_satisfaction: float
    choices_made: int
    significant_choices: int
    difficulty_adjustments: int
    support_level: str
    combat_encounters: int


@dataclass(slots=True)
class SupportResponseResult:
    success: bool
    updated_arc: Arc | None = None
    previous_level: str | None = None
    support_level: str | None = None
    average_effectiveness: float | None = None
    error: str | None = None
    error_code: str | None = None
