from __future__ import annotations

from collections.abc import Sequence
from statistics import mean

from storyarc.config import Settings, settings as default_settings
from storyarc.modules.arc.models import ArcAnalytics, CompletionReward, FinalArcMetrics
from storyarc.modules.arc.schemas import Arc, GlobalArcMetrics, evolve
from storyarc.modules.arc.snapshots import CharacterSnapshot

_INTEGRATION_SLOTS = 5


def quality_score(arc: Arc) -> float:
    efficiency = arc.progression.metrics.efficiency_score
    score = 5.0 + (efficiency - 5.0) + (arc.agency_score - 50.0) / 10.0
    return max(1.0, min(10.0, score))


def player_satisfaction(arc: Arc) -> float:
    balance = 10.0 - abs(arc.difficulty - 5.0)
    efficiency = arc.progression.metrics.efficiency_score
    return (arc.agency_score + balance * 10.0 + efficiency * 10.0) / 3.0


def integration_coverage(arc: Arc) -> float:
    points = arc.integration_points
    enabled = sum(
        1
        for point in (points.combat, points.progression, points.quest, points.inventory, points.relationship)
        if point is not None
    )
    return enabled / _INTEGRATION_SLOTS * 10.0


def arc_analytics(arc: Arc) -> ArcAnalytics:
    metrics = arc.progression.metrics
    combat = arc.integration_points.combat
    return ArcAnalytics(
        arc_id=arc.id,
        is_completed=arc.is_completed,
        status=arc.status,
        progress=arc.progression.total_progress,
        difficulty=arc.difficulty,
        agency_score=arc.agency_score,
        efficiency_score=metrics.efficiency_score,
        quality_score=quality_score(arc),
        player_satisfaction=player_satisfaction(arc),
        choices_made=metrics.total_choices_made,
        significant_choices=metrics.significant_choices,
        difficulty_adjustments=len(arc.difficulty_settings.difficulty_history),
        support_level=arc.failure_recovery.adaptive_support.support_level,
        combat_encounters=len(combat.combat_consequences) if combat is not None else 0,
    )


def final_arc_metrics(arc: Arc) -> FinalArcMetrics:
    metrics = arc.progression.metrics
    return FinalArcMetrics(
        total_duration=metrics.time_spent,
        final_agency_score=arc.agency_score,
        final_difficulty=arc.difficulty,
        objectives_completed=metrics.objectives_completed,
        objectives_failed=metrics.objectives_failed,
        efficiency_score=metrics.efficiency_score,
        milestones_achieved=metrics.milestones_achieved,
        player_satisfaction=player_satisfaction(arc),
    )


def completion_rewards(final: FinalArcMetrics, *, cfg: Settings | None = None) -> list[CompletionReward]:
    cfg = cfg or default_settings
    rewards = [
        CompletionReward(
            type="experience",
            amount=int(round(cfg.completion_base_experience + cfg.completion_experience_per_difficulty * final.final_difficulty)),
            description="Arc completion experience",
        )
    ]
    if final.final_agency_score > cfg.completion_agency_bonus_threshold:
        rewards.append(
            CompletionReward(
                type="skill_points",
                amount=cfg.completion_agency_skill_points,
                description="High player agency bonus",
            )
        )
    if final.total_duration < cfg.completion_efficient_duration:
        rewards.append(
            CompletionReward(
                type="currency",
                amount=cfg.completion_efficiency_currency,
                description="Efficient completion bonus",
            )
        )
    return rewards


def next_arc_suggestions(arc: Arc, character: CharacterSnapshot) -> list[str]:
    suggestions: list[str] = []
    if "growth" in arc.thematic_tags:
        suggestions.append("Consider a challenge-focused arc to test new abilities")
    if "relationships" in arc.thematic_tags:
        suggestions.append("Explore political or faction-based storylines")
    if character.level >= 5:
        suggestions.append("Ready for more complex multi-phase arcs")
    return suggestions


def recompute_history_averages(metrics: GlobalArcMetrics, history: Sequence[Arc]) -> GlobalArcMetrics:
    if not history:
        return metrics
    return evolve(
        metrics,
        average_arc_duration=mean(arc.progression.metrics.time_spent for arc in history),
        average_player_satisfaction=mean(player_satisfaction(arc) for arc in history),
        average_difficulty_rating=mean(arc.difficulty for arc in history),
        average_agency_score=mean(arc.agency_score for arc in history),
        system_integration_score=mean(integration_coverage(arc) for arc in history),
    )


def record_support_outcome(metrics: GlobalArcMetrics, *, accepted: bool) -> GlobalArcMetrics:
    responses = metrics.support_responses + 1
    acceptances = metrics.support_acceptances + (1 if accepted else 0)
    return evolve(
        metrics,
        support_responses=responses,
        support_acceptances=acceptances,
        failure_recovery_success_rate=acceptances / responses,
    )
