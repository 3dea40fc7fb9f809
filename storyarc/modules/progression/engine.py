from __future__ import annotations

from typing import Any

from storyarc.config import Settings, settings as default_settings
from storyarc.modules.arc.errors import ValidationError
from storyarc.modules.arc.schemas import (
    Arc,
    ArcMilestone,
    ArcPhase,
    ArcPlayerChoice,
    ArcStateSnapshot,
    ChoiceQuality,
    DifficultyAdjustment,
    ObjectiveStatus,
    PlayerAgencyMetrics,
    evolve,
)
from storyarc.modules.arc.snapshots import CharacterSnapshot
from storyarc.utils.time import utc_now_iso

_SIGNIFICANT_AGENCY = 7.0
_RELEVANCE_BY_SCOPE = {"arc": 8.0, "phase": 6.0, "local": 4.0}


def _phase_completion(phase: ArcPhase) -> float:
    if not phase.objectives:
        return 0.0
    done = sum(1 for objective in phase.objectives if objective.status == "completed")
    return min(100.0, done / len(phase.objectives) * 100.0)


def _success_rate(arc: Arc) -> float | None:
    metrics = arc.progression.metrics
    attempted = metrics.objectives_completed + metrics.objectives_failed
    if attempted <= 0:
        return None
    return metrics.objectives_completed / attempted


def _efficiency_score(arc: Arc, time_spent: int) -> float:
    """Blend objective success with pace against the phases' estimated durations."""
    metrics = arc.progression.metrics
    success = _success_rate(arc)
    if success is None:
        return metrics.efficiency_score
    objectives = arc.all_objectives()
    budget = sum(phase.estimated_duration for phase in arc.phases)
    turns_per_objective = budget / len(objectives) if objectives and budget else 1.0
    pace = min(1.0, turns_per_objective * metrics.objectives_completed / max(1, time_spent))
    return max(0.0, min(10.0, 10.0 * (success + pace) / 2.0))


def update_arc_progression(arc: Arc) -> Arc:
    progression = arc.progression
    current = arc.current_phase
    phase_progress = _phase_completion(current) if current is not None else 0.0

    if arc.phases:
        total_progress = sum(_phase_completion(phase) for phase in arc.phases) / len(arc.phases)
    else:
        total_progress = phase_progress

    time_spent = progression.metrics.time_spent + 1
    metrics = evolve(
        progression.metrics,
        time_spent=time_spent,
        efficiency_score=_efficiency_score(arc, time_spent),
    )
    return evolve(
        arc,
        progression=evolve(
            progression,
            phase_progress=phase_progress,
            total_progress=min(100.0, total_progress),
            metrics=metrics,
        ),
    )


def _difficulty_reason(success_rate: float) -> str:
    if success_rate < 0.3:
        return "Player struggling significantly"
    if success_rate < 0.5:
        return "Player having difficulty"
    if success_rate > 0.9:
        return "Player finding content too easy"
    return "Adaptive difficulty adjustment"


def target_difficulty(arc: Arc, character: CharacterSnapshot, success_rate: float) -> float:
    settings_ = arc.difficulty_settings
    target = settings_.base_difficulty
    if success_rate < 0.4:
        target -= 1.0
    elif success_rate > 0.8:
        target += 0.5
    target *= max(0.5, character.level / 10.0)
    target += (success_rate - 0.6) * settings_.player_performance_weight * 2.0
    return target


def adjust_arc_difficulty(
    arc: Arc,
    character: CharacterSnapshot,
    turn_id: str,
    *,
    cfg: Settings | None = None,
) -> Arc:
    cfg = cfg or default_settings
    settings_ = arc.difficulty_settings
    if not settings_.adaptive_scaling:
        return arc
    success_rate = _success_rate(arc)
    if success_rate is None:
        return arc

    target = max(cfg.difficulty_min, min(cfg.difficulty_max, target_difficulty(arc, character, success_rate)))
    current = settings_.current_difficulty
    if abs(target - current) < cfg.difficulty_adjustment_step:
        return arc

    adjustment = DifficultyAdjustment(
        timestamp=utc_now_iso(),
        turn_id=turn_id,
        old_difficulty=current,
        new_difficulty=target,
        reason=_difficulty_reason(success_rate),
    )
    metrics = evolve(
        arc.progression.metrics,
        difficulty_adjustments=arc.progression.metrics.difficulty_adjustments + 1,
    )
    return evolve(
        arc,
        difficulty_settings=evolve(
            settings_,
            current_difficulty=target,
            difficulty_history=(*settings_.difficulty_history, adjustment),
        ),
        progression=evolve(arc.progression, metrics=metrics),
    )


def _blend_quality(current: ChoiceQuality, choice: ArcPlayerChoice) -> ChoiceQuality:
    clarity = 8.0 if choice.consequences else 4.0
    moral = 8.0 if choice.moral_alignment == "complex" else 5.0
    relevance = _RELEVANCE_BY_SCOPE.get(choice.impact_scope, 4.0)
    return ChoiceQuality(
        average_alternatives=(current.average_alternatives + len(choice.alternatives)) / 2.0,
        consequence_clarity=(current.consequence_clarity + clarity) / 2.0,
        choice_relevance=(current.choice_relevance + relevance) / 2.0,
        moral_complexity=(current.moral_complexity + moral) / 2.0,
        strategic_depth=(current.strategic_depth + choice.narrative_weight) / 2.0,
    )


def agency_score_from_quality(quality: ChoiceQuality) -> float:
    raw = (
        quality.average_alternatives * 10.0
        + quality.consequence_clarity * 10.0
        + quality.choice_relevance * 10.0
        + quality.moral_complexity * 5.0
        + quality.strategic_depth * 10.0
    ) / 4.5
    return max(0.0, min(100.0, raw))


def track_player_choice(
    arc: Arc,
    choice: ArcPlayerChoice,
    *,
    cfg: Settings | None = None,
) -> Arc:
    cfg = cfg or default_settings
    agency = arc.player_agency_metrics
    quality = _blend_quality(agency.choice_quality, choice)
    significant = choice.agency_score >= _SIGNIFICANT_AGENCY

    updated_agency = PlayerAgencyMetrics(
        overall_agency_score=agency_score_from_quality(quality),
        choice_quality=quality,
        impactful_decisions=agency.impactful_decisions + (1 if significant else 0),
        meaningful_alternatives=agency.meaningful_alternatives + len(choice.alternatives),
        player_initiated_actions=agency.player_initiated_actions + (0 if choice.alternatives else 1),
    )

    progression = arc.progression
    history = (*progression.player_choice_history, choice)[-cfg.choice_history_limit :]
    total = progression.metrics.total_choices_made + 1
    previous_average = progression.metrics.player_agency_average
    metrics = evolve(
        progression.metrics,
        total_choices_made=total,
        significant_choices=progression.metrics.significant_choices + (1 if significant else 0),
        player_agency_average=previous_average + (choice.agency_score - previous_average) / total,
    )
    return evolve(
        arc,
        player_agency_metrics=updated_agency,
        progression=evolve(progression, player_choice_history=history, metrics=metrics),
    )


def _next_phase(arc: Arc, phase: ArcPhase) -> ArcPhase | None:
    for candidate in arc.phases:
        if candidate.order > phase.order:
            return candidate
    return None


def record_objective_outcome(
    arc: Arc,
    objective_id: str,
    status: ObjectiveStatus,
    *,
    turn_id: str,
    progress: float | None = None,
) -> Arc:
    """Update one objective; advance the current phase once its primary objectives are all done."""
    found = False
    previous_status: str | None = None
    phases: list[ArcPhase] = []
    for phase in arc.phases:
        objectives = []
        for objective in phase.objectives:
            if objective.id == objective_id:
                found = True
                previous_status = objective.status
                if progress is None:
                    new_progress = 100.0 if status == "completed" else objective.progress
                else:
                    new_progress = progress
                objective = evolve(objective, status=status, progress=new_progress)
            objectives.append(objective)
        phases.append(evolve(phase, objectives=tuple(objectives)))
    if not found:
        raise ValidationError(detail=f"unknown objective {objective_id!r}")

    metrics = arc.progression.metrics
    if status != previous_status:
        if status == "completed":
            metrics = evolve(metrics, objectives_completed=metrics.objectives_completed + 1)
        elif status == "failed":
            metrics = evolve(metrics, objectives_failed=metrics.objectives_failed + 1)

    arc = evolve(arc, phases=tuple(phases), progression=evolve(arc.progression, metrics=metrics))
    current = arc.current_phase
    if current is None:
        return arc

    primaries = [objective for objective in current.objectives if objective.type == "primary"]
    if not primaries or any(objective.status != "completed" for objective in primaries):
        return arc

    progression = arc.progression
    milestones = progression.milestones
    if not any(milestone.phase_id == current.id for milestone in milestones):
        milestones = (
            *milestones,
            ArcMilestone(
                id=f"{arc.id}:{current.id}:milestone",
                title=f"{current.name} complete",
                phase_id=current.id,
                achieved_at_turn=turn_id,
            ),
        )
    metrics = evolve(progression.metrics, milestones_achieved=sum(1 for m in milestones if m.achieved_at_turn))
    upcoming = _next_phase(arc, current)
    return evolve(
        arc,
        progression=evolve(
            progression,
            milestones=milestones,
            metrics=metrics,
            current_phase_id=upcoming.id if upcoming is not None else current.id,
            phase_progress=0.0 if upcoming is not None else 100.0,
        ),
    )


def update_arc_state(
    arc: Arc,
    changes: dict[str, Any],
    *,
    turn_id: str,
    trigger: str,
    cfg: Settings | None = None,
) -> Arc:
    cfg = cfg or default_settings
    tracking = arc.state_tracking
    snapshot = ArcStateSnapshot(turn_id=turn_id, trigger_event=trigger, flags=dict(tracking.flags))
    history = (*tracking.history, snapshot)[-cfg.state_history_limit :]
    return evolve(
        arc,
        state_tracking=evolve(tracking, flags={**tracking.flags, **changes}, history=history),
    )
