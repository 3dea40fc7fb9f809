from __future__ import annotations

from storyarc.config import Settings, settings as default_settings
from storyarc.modules.arc.schemas import (
    AdaptiveSupport,
    Arc,
    ArcProgression,
    CombatIntegration,
    DifficultySettings,
    FailureRecoveryConfig,
    FailureThreshold,
    IntegrationPoints,
    InventoryIntegration,
    PlayerAgencyMetrics,
    ProgressionIntegration,
    QuestChaining,
    QuestIntegration,
    RelationshipIntegration,
    SupportTracking,
    evolve,
)

DEFAULT_SUPPORT_TYPES: tuple[str, ...] = (
    "guidance",
    "difficulty_reduction",
    "resource_boost",
    "narrative_intervention",
)


def default_difficulty_settings(cfg: Settings | None = None) -> DifficultySettings:
    cfg = cfg or default_settings
    return DifficultySettings(
        base_difficulty=cfg.difficulty_default,
        current_difficulty=cfg.difficulty_default,
        adaptive_scaling=True,
        player_performance_weight=cfg.difficulty_performance_weight,
    )


def default_agency_metrics() -> PlayerAgencyMetrics:
    return PlayerAgencyMetrics()


def default_failure_thresholds(cfg: Settings | None = None) -> tuple[FailureThreshold, ...]:
    cfg = cfg or default_settings
    return tuple(cfg.failure_thresholds)


def default_adaptive_support() -> AdaptiveSupport:
    return AdaptiveSupport(
        support_level="moderate",
        support_types=DEFAULT_SUPPORT_TYPES,
        effectiveness_tracking=tuple(SupportTracking(support_type=name) for name in DEFAULT_SUPPORT_TYPES),
    )


def default_failure_recovery(cfg: Settings | None = None) -> FailureRecoveryConfig:
    return FailureRecoveryConfig(
        failure_thresholds=default_failure_thresholds(cfg),
        adaptive_support=default_adaptive_support(),
    )


def default_integration_points(arc_id: str) -> IntegrationPoints:
    return IntegrationPoints(
        combat=CombatIntegration(),
        progression=ProgressionIntegration(),
        quest=QuestIntegration(quest_chaining=QuestChaining(chain_id=f"{arc_id}:chain")),
        inventory=InventoryIntegration(),
        relationship=RelationshipIntegration(),
    )


def new_arc(
    *,
    arc_id: str,
    character_id: str,
    title: str,
    order: int,
    cfg: Settings | None = None,
    **fields,
) -> Arc:
    """Build an Arc carrying every default the engine relies on.

    Components read difficulty, agency and integration state straight off
    the arc; they never substitute their own fallbacks.
    """
    fields.setdefault("difficulty_settings", default_difficulty_settings(cfg))
    fields.setdefault("player_agency_metrics", default_agency_metrics())
    fields.setdefault("failure_recovery", default_failure_recovery(cfg))
    fields.setdefault("integration_points", default_integration_points(arc_id))
    arc = Arc(
        id=arc_id,
        character_id=character_id,
        title=title,
        order=order,
        **fields,
    )
    if arc.progression.current_phase_id is None and arc.phases:
        arc = evolve(arc, progression=evolve(arc.progression, current_phase_id=arc.phases[0].id))
    return arc


def enhance_arc(arc: Arc, cfg: Settings | None = None) -> Arc:
    """Attach failure-recovery, adaptive-support and integration scaffolding.

    Applied once to a freshly generated arc. Scaffolding the generator
    already supplied is kept as is.
    """
    recovery = arc.failure_recovery
    if not recovery.failure_thresholds:
        recovery = evolve(recovery, failure_thresholds=default_failure_thresholds(cfg))
    if not recovery.adaptive_support.effectiveness_tracking:
        recovery = evolve(recovery, adaptive_support=default_adaptive_support())

    defaults = default_integration_points(arc.id)
    current = arc.integration_points
    integration = IntegrationPoints(
        combat=current.combat or defaults.combat,
        progression=current.progression or defaults.progression,
        quest=current.quest or defaults.quest,
        inventory=current.inventory or defaults.inventory,
        relationship=current.relationship or defaults.relationship,
    )

    progression = arc.progression
    if progression.current_phase_id is None and arc.phases:
        progression = evolve(progression, current_phase_id=arc.phases[0].id)

    return evolve(
        arc,
        failure_recovery=recovery,
        integration_points=integration,
        progression=progression,
    )
