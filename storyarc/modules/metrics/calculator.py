from __future__ import annotations

from storyarc.config import Settings, settings as default_settings
from storyarc.modules.arc.models import FailureMetrics
from storyarc.modules.arc.schemas import Arc
from storyarc.modules.arc.snapshots import CharacterSnapshot, WorldStateSnapshot

_MAX_TIME_EFFICIENCY = 2.0


def _ratio(value: float | None, maximum: float | None) -> float:
    if value is None or not maximum:
        return 1.0
    return max(0.0, min(1.0, float(value) / float(maximum)))


def objective_failure_rate(arc: Arc) -> float:
    metrics = arc.progression.metrics
    attempted = metrics.objectives_failed + metrics.objectives_completed
    if attempted <= 0:
        return 0.0
    return float(metrics.objectives_failed) / float(attempted)


def time_efficiency(arc: Arc) -> float:
    metrics = arc.progression.metrics
    value = float(metrics.time_spent) / float(max(1, metrics.objectives_completed))
    return max(0.0, min(_MAX_TIME_EFFICIENCY, value))


def resource_depletion(character: CharacterSnapshot, cfg: Settings | None = None) -> float:
    cfg = cfg or default_settings
    health_ratio = _ratio(character.health, character.max_health)
    # A character without mana never counts as mana-depleted.
    mana_ratio = 1.0 if character.mana is None else _ratio(character.mana, character.max_mana or 1.0)
    currency_ratio = min(1.0, float(character.currency) / float(max(1, cfg.currency_reference)))
    return 1.0 - (health_ratio + mana_ratio + currency_ratio) / 3.0


def relationship_stress(world: WorldStateSnapshot) -> float:
    relationships = world.npc_relationships
    if not relationships:
        return 0.0
    negative = sum(1 for rel in relationships if rel.relationship_score < 0)
    return float(negative) / float(len(relationships))


def frustration_indicator(world: WorldStateSnapshot, cfg: Settings | None = None) -> float:
    """Share of recent choices that echo an earlier one, saturating at the repeat cap."""
    cfg = cfg or default_settings
    recent = [
        choice.choice_text.strip().lower()
        for choice in world.player_choices[-cfg.frustration_window :]
        if choice.choice_text.strip()
    ]
    repeats = 0
    for idx, text in enumerate(recent):
        prefix = text[: cfg.frustration_prefix_chars]
        if any(prefix in earlier for earlier in recent[:idx]):
            repeats += 1
    return min(1.0, float(repeats) / float(max(1, cfg.frustration_repeat_cap)))


def character_capability(character: CharacterSnapshot) -> float:
    return min(10.0, float(character.level) + float(character.experience_points) / 1000.0)


def difficulty_mismatch(arc: Arc, character: CharacterSnapshot) -> float:
    return abs(arc.difficulty - character_capability(character)) / 10.0


def calculate_failure_metrics(
    arc: Arc,
    character: CharacterSnapshot,
    world: WorldStateSnapshot,
    *,
    cfg: Settings | None = None,
) -> FailureMetrics:
    return FailureMetrics(
        objective_failure_rate=objective_failure_rate(arc),
        time_efficiency=time_efficiency(arc),
        resource_depletion=resource_depletion(character, cfg),
        relationship_stress=relationship_stress(world),
        frustration_indicator=frustration_indicator(world, cfg),
        difficulty_mismatch=difficulty_mismatch(arc, character),
    )


def metric_value(metric: str, metrics: FailureMetrics) -> float:
    """Map a threshold metric name onto the metric it is compared against."""
    if metric == "objective_failures":
        return metrics.objective_failure_rate
    if metric == "time_exceeded":
        return metrics.time_efficiency
    if metric == "resource_depletion":
        return metrics.resource_depletion
    if metric == "relationship_breakdown":
        return metrics.relationship_stress
    if metric == "player_frustration":
        return metrics.frustration_indicator
    if metric == "difficulty_mismatch":
        return metrics.difficulty_mismatch
    return 0.0
