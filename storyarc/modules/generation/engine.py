from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable

from storyarc.config import Settings, settings as default_settings
from storyarc.modules.arc.defaults import default_difficulty_settings, new_arc
from storyarc.modules.arc.errors import ArcEngineError, GenerationError
from storyarc.modules.arc.models import ArcGenerationResult, NarrativeDraft
from storyarc.modules.arc.schemas import (
    AlternativeEnding,
    Arc,
    ArcObjective,
    ArcPhase,
    ArcQualityMetrics,
    BranchingPath,
    KeyDecisionPoint,
    UnlockCondition,
    evolve,
)
from storyarc.modules.arc.snapshots import ArcGenerationInput
from storyarc.modules.generation.archetypes import (
    ARC_TEMPLATES,
    PHASE_TEMPLATES,
    ArcTemplate,
    render_template_text,
    select_arc_archetype,
)

logger = logging.getLogger(__name__)


class NarrativeGenerator(ABC):
    """Supplies the creative text for an arc; the engine treats it as opaque."""

    name: str

    @abstractmethod
    def compose(self, archetype: str, template: ArcTemplate, payload: ArcGenerationInput) -> NarrativeDraft:
        pass


class TemplateNarrativeGenerator(NarrativeGenerator):
    name = "template"

    def compose(self, archetype: str, template: ArcTemplate, payload: ArcGenerationInput) -> NarrativeDraft:
        return NarrativeDraft(
            title=render_template_text(template.title, payload),
            description=render_template_text(template.description, payload),
            phase_descriptions={phase.key: phase.description for phase in PHASE_TEMPLATES},
        )


def _clamp_quality(value: float) -> float:
    return round(max(1.0, min(10.0, value)), 2)


def _next_order(payload: ArcGenerationInput, prior_orders: Iterable[int]) -> int:
    orders = [arc.order for arc in payload.previous_arcs]
    orders.extend(int(order) for order in prior_orders)
    return max(orders, default=0) + 1


def _unlock_conditions(payload: ArcGenerationInput) -> tuple[str, ...]:
    conditions: list[str] = []
    if payload.previous_arcs:
        conditions.append("Previous arc completed")
    if payload.character.level >= 3:
        conditions.append(f"Character level {payload.character.level} reached")
    return tuple(conditions)


def _build_phases(arc_id: str, draft: NarrativeDraft, payload: ArcGenerationInput) -> tuple[ArcPhase, ...]:
    phases: list[ArcPhase] = []
    for order, template in enumerate(PHASE_TEMPLATES, start=1):
        phase_id = f"{arc_id}:{template.key}"
        phases.append(
            ArcPhase(
                id=phase_id,
                name=template.name,
                description=draft.phase_descriptions.get(template.key, template.description),
                order=order,
                narrative_weight=template.narrative_weight,
                objectives=(
                    ArcObjective(
                        id=f"{phase_id}:objective-1",
                        description=render_template_text(template.seed_objective, payload),
                        type="primary",
                    ),
                ),
                estimated_duration=template.estimated_duration,
                difficulty_modifier=template.difficulty_modifier,
            )
        )
    return tuple(phases)


def _branching_paths(arc_id: str, payload: ArcGenerationInput) -> tuple[BranchingPath, ...]:
    paths: list[BranchingPath] = []
    for idx, goal in enumerate(payload.narrative_goals.secondary_goals, start=1):
        text = goal.strip()
        if not text:
            continue
        paths.append(
            BranchingPath(
                path_id=f"{arc_id}:branch-{idx}",
                name=text,
                description=f"Pursue '{text}' alongside the main thread",
                condition=UnlockCondition(type="choice_made", value=text),
            )
        )
    return tuple(paths)


def _alternative_endings(arc_id: str, template: ArcTemplate) -> tuple[AlternativeEnding, ...]:
    endings = [
        AlternativeEnding(ending_id=f"{arc_id}:ending-triumphant", title="Hard-won victory", tone="triumphant", min_agency_score=70.0),
        AlternativeEnding(ending_id=f"{arc_id}:ending-bittersweet", title="A costly peace", tone="bittersweet", min_agency_score=40.0),
    ]
    if template.consequence_weight == "heavy":
        endings.append(AlternativeEnding(ending_id=f"{arc_id}:ending-tragic", title="Everything lost", tone="tragic"))
    else:
        endings.append(AlternativeEnding(ending_id=f"{arc_id}:ending-open", title="Questions remain", tone="open"))
    return tuple(endings)


def _key_decision_points(phases: tuple[ArcPhase, ...], payload: ArcGenerationInput) -> tuple[KeyDecisionPoint, ...]:
    points: list[KeyDecisionPoint] = []
    name = payload.character.name
    factions = [standing.faction_id for standing in payload.story_state.faction_standings]
    for phase in phases:
        if phase.narrative_weight == "rising_action" and factions:
            points.append(
                KeyDecisionPoint(
                    decision_id=f"{phase.id}:decision",
                    phase_id=phase.id,
                    prompt=f"Which side will {name} take between {', '.join(factions)}?",
                )
            )
        elif phase.narrative_weight == "climax":
            points.append(
                KeyDecisionPoint(
                    decision_id=f"{phase.id}:decision",
                    phase_id=phase.id,
                    prompt=f"How will {name} face the heart of the conflict?",
                )
            )
    return tuple(points)


def compute_quality_metrics(arc: Arc, payload: ArcGenerationInput) -> ArcQualityMetrics:
    integration = arc.integration_points
    enabled = sum(
        1
        for point in (integration.combat, integration.progression, integration.quest, integration.inventory, integration.relationship)
        if point is not None
    )
    wanted = set(payload.player_preferences.preferred_themes) | set(payload.narrative_goals.thematic_targets)
    overlap = len(wanted & set(arc.thematic_tags))

    narrative_depth = 3.0 + 0.5 * len(arc.phases) + 0.5 * len(arc.branching_paths) + 0.5 * len(arc.key_decision_points)
    agency_potential = arc.player_choice_influence / 10.0
    system_integration = 2.0 * enabled
    thematic = 6.0 + overlap + (1.0 if len(arc.thematic_tags) >= 3 else 0.0)
    balance = 10.0 - abs(arc.difficulty - payload.player_preferences.preferred_difficulty)
    replayability = 3.0 + len(arc.branching_paths) + len(arc.alternative_endings)

    scores = [
        _clamp_quality(narrative_depth),
        _clamp_quality(agency_potential),
        _clamp_quality(system_integration),
        _clamp_quality(thematic),
        _clamp_quality(balance),
        _clamp_quality(replayability),
    ]
    return ArcQualityMetrics(
        narrative_depth=scores[0],
        player_agency_potential=scores[1],
        system_integration=scores[2],
        thematic_consistency=scores[3],
        difficulty_balance=scores[4],
        replayability=scores[5],
        overall_quality=_clamp_quality(sum(scores) / len(scores)),
    )


def _adaptation_notes(payload: ArcGenerationInput) -> list[str]:
    notes = [f"Arc adapted for character level {payload.character.level}"]
    relationships = payload.story_state.npc_relationships
    if relationships:
        notes.append(f"Integrated with {len(relationships)} existing relationships")
    prefs = payload.player_preferences
    if prefs.preferred_pacing != "moderate":
        notes.append(f"Pacing tuned for {prefs.preferred_pacing} play")
    if prefs.avoided_elements:
        notes.append(f"Avoids: {', '.join(prefs.avoided_elements)}")
    return notes


def _integration_suggestions(arc: Arc, payload: ArcGenerationInput) -> list[str]:
    suggestions: list[str] = []
    if arc.consequence_weight == "heavy" or payload.world_state.threat_level >= 5:
        suggestions.append("Consider adding combat encounters")
    if payload.character.skills:
        suggestions.append("Integrate with crafting system")
    if payload.story_state.npc_relationships:
        suggestions.append("Tie emotional beats to existing relationships")
    if arc.conflicting_factions:
        suggestions.append("Let faction reputation gate key decisions")
    if not suggestions:
        suggestions.append("Seed quest chains from the introduction objective")
    return suggestions


def generate_arc(
    payload: ArcGenerationInput,
    *,
    narrator: NarrativeGenerator | None = None,
    cfg: Settings | None = None,
    arc_id: str | None = None,
    prior_orders: Iterable[int] = (),
) -> ArcGenerationResult:
    cfg = cfg or default_settings
    narrator = narrator or TemplateNarrativeGenerator()
    archetype, reason = select_arc_archetype(payload)
    template = ARC_TEMPLATES.get(archetype)
    if template is None:
        raise GenerationError(detail=f"no template for {archetype}")

    try:
        draft = narrator.compose(archetype, template, payload)
    except ArcEngineError:
        raise
    except Exception as exc:
        raise GenerationError(detail=f"{narrator.name}: {exc}") from exc
    if not draft.title.strip():
        raise GenerationError(detail=f"{narrator.name} returned an empty title")

    arc_id = arc_id or str(uuid.uuid4())
    phases = _build_phases(arc_id, draft, payload)
    difficulty = max(cfg.difficulty_min, min(cfg.difficulty_max, float(payload.player_preferences.preferred_difficulty)))
    arc = new_arc(
        arc_id=arc_id,
        character_id=payload.character.id,
        title=draft.title.strip(),
        order=_next_order(payload, prior_orders),
        cfg=cfg,
        description=draft.description,
        thematic_tags=template.thematic_tags,
        consequence_weight=template.consequence_weight,
        player_choice_influence=template.player_choice_influence,
        unlock_conditions=_unlock_conditions(payload),
        conflicting_factions=tuple(standing.faction_id for standing in payload.story_state.faction_standings),
        phases=phases,
        branching_paths=_branching_paths(arc_id, payload),
        alternative_endings=_alternative_endings(arc_id, template),
        key_decision_points=_key_decision_points(phases, payload),
        difficulty_settings=evolve(
            default_difficulty_settings(cfg),
            base_difficulty=difficulty,
            current_difficulty=difficulty,
        ),
    )
    logger.debug("generated %s arc %s for character %s", archetype, arc.id, payload.character.id)
    return ArcGenerationResult(
        arc=arc,
        archetype=archetype,
        generation_reasoning=f"Generated {archetype} because {reason}.",
        adaptation_notes=_adaptation_notes(payload),
        integration_suggestions=_integration_suggestions(arc, payload),
        quality_metrics=compute_quality_metrics(arc, payload),
    )
