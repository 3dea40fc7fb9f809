from __future__ import annotations

import logging
from collections.abc import Mapping
from threading import Lock
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from storyarc.config import Settings, settings as default_settings
from storyarc.modules.arc.defaults import enhance_arc
from storyarc.modules.arc.errors import (
    ARC_INTERNAL_ERROR,
    ArcEngineError,
    GenerationError,
    IntegrationError,
    ValidationError,
)
from storyarc.modules.arc.events import (
    CombatResultEvent,
    InventoryEvent,
    PlayerChoiceEvent,
    ProgressionEvent,
    QuestEvent,
    RelationshipEvent,
    UpdateEvent,
    parse_update_event,
)
from storyarc.modules.arc.models import (
    ArcAnalytics,
    ArcCompletionResult,
    ArcCreationResult,
    ArcUpdateResult,
    IntegrationResult,
    SupportResponseResult,
)
from storyarc.modules.arc.schemas import Arc, ArcPlayerChoice, GlobalArcMetrics, evolve
from storyarc.modules.arc.snapshots import ArcGenerationInput, CharacterSnapshot, WorldStateSnapshot
from storyarc.modules.failure.detection import detect_arc_failures
from storyarc.modules.failure.recovery import generate_recovery_options
from storyarc.modules.failure.support import (
    LearningOutcome,
    LearningStrategy,
    PatternTallyStrategy,
    average_effectiveness,
    update_adaptive_support,
    update_learning_system,
)
from storyarc.modules.generation.engine import NarrativeGenerator, TemplateNarrativeGenerator, generate_arc
from storyarc.modules.integration.combat import integrate_combat
from storyarc.modules.integration.inventory import integrate_inventory
from storyarc.modules.integration.progression import integrate_progression
from storyarc.modules.integration.quest import integrate_quest
from storyarc.modules.integration.relationship import integrate_relationship
from storyarc.modules.manager import analytics
from storyarc.modules.manager.store import ArcStore
from storyarc.modules.progression.engine import adjust_arc_difficulty, track_player_choice, update_arc_progression
from storyarc.utils.time import utc_now_iso

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def _validated(model, raw: Any, *, label: str):
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError(detail=f"{label}: {exc.error_count()} invalid field(s)") from exc


def _as_update_event(raw: Any) -> UpdateEvent:
    try:
        return parse_update_event(raw)
    except PydanticValidationError as exc:
        raise ValidationError(detail=f"update event: {exc.error_count()} invalid field(s)") from exc


def _error_fields(exc: Exception) -> tuple[str, str]:
    if isinstance(exc, ArcEngineError):
        return exc.message, exc.code
    return f"Unexpected arc engine failure: {exc}", ARC_INTERNAL_ERROR


class ArcManager:
    """Per-session orchestrator owning the active-arc store and arc history.

    Every public operation returns a result object; failures never escape as
    exceptions. A failed call leaves the store and history untouched; only
    the update counters record it.
    """

    def __init__(
        self,
        *,
        cfg: Settings | None = None,
        narrator: NarrativeGenerator | None = None,
        learning_strategy: LearningStrategy | None = None,
        session_id: str | None = None,
    ) -> None:
        self.cfg = cfg or default_settings
        self.narrator = narrator or TemplateNarrativeGenerator()
        self.learning_strategy = learning_strategy or PatternTallyStrategy()
        self.session_id = session_id
        self._lock = Lock()
        self._store = ArcStore()
        self._history: tuple[Arc, ...] = ()
        self._metrics = GlobalArcMetrics()

    # --- lifecycle ---

    def create_arc(self, payload: ArcGenerationInput | Mapping[str, Any]) -> ArcCreationResult:
        with self._lock:
            try:
                generation_input = _validated(ArcGenerationInput, payload, label="generation input")
                character_id = generation_input.character.id
                prior_orders = [arc.order for arc in self._all_arcs() if arc.character_id == character_id]
                try:
                    generation = generate_arc(
                        generation_input,
                        narrator=self.narrator,
                        cfg=self.cfg,
                        prior_orders=prior_orders,
                    )
                except GenerationError:
                    raise
                except Exception as exc:
                    raise GenerationError(detail=str(exc)) from exc
                arc = evolve(enhance_arc(generation.arc, self.cfg), status="active")
                store = self._store.insert(arc)
            except Exception as exc:
                message, code = _error_fields(exc)
                logger.warning("arc creation failed code=%s session=%s: %s", code, self.session_id, message)
                return ArcCreationResult(success=False, error=message, error_code=code)

            generation.arc = arc
            self._store = store
            self._metrics = evolve(self._metrics, total_arcs_created=self._metrics.total_arcs_created + 1)
            logger.info(
                "arc created id=%s archetype=%s character=%s order=%s",
                arc.id,
                generation.archetype,
                arc.character_id,
                arc.order,
            )
            return ArcCreationResult(success=True, arc=arc, generation=generation)

    def update_arc(
        self,
        arc_id: str,
        character: CharacterSnapshot | Mapping[str, Any],
        world: WorldStateSnapshot | Mapping[str, Any],
        turn_id: str,
        event: UpdateEvent | Mapping[str, Any],
    ) -> ArcUpdateResult:
        with self._lock:
            try:
                arc = self._store.get(arc_id)
                character = _validated(CharacterSnapshot, character, label="character")
                world = _validated(WorldStateSnapshot, world, label="world state")
                event = _as_update_event(event)

                updated = update_arc_progression(arc)
                updated = adjust_arc_difficulty(updated, character, turn_id, cfg=self.cfg)

                detection = detect_arc_failures(updated, character, world, cfg=self.cfg)
                update_results: list[dict[str, Any]] = []
                recovery_options = []
                if detection.failures:
                    recovery_options = generate_recovery_options(updated, detection.failures, character, world)
                    updated = evolve(
                        updated,
                        failure_recovery=evolve(updated.failure_recovery, recovery_options=tuple(recovery_options)),
                    )
                    update_results.append(
                        {
                            "type": "failure_detection",
                            "failures": [failure.metric for failure in detection.failures],
                            "recovery_option_ids": [option.id for option in recovery_options],
                        }
                    )

                updated, result = self._dispatch(updated, event, character, world, turn_id)
                update_results.append(result)
                store = self._store.replace(updated)
            except Exception as exc:
                message, code = _error_fields(exc)
                self._metrics = evolve(
                    self._metrics,
                    total_updates=self._metrics.total_updates + 1,
                    failed_updates=self._metrics.failed_updates + 1,
                )
                logger.warning("arc update failed arc=%s turn=%s code=%s: %s", arc_id, turn_id, code, message)
                return ArcUpdateResult(success=False, error=message, error_code=code)

            self._store = store
            self._metrics = evolve(self._metrics, total_updates=self._metrics.total_updates + 1)
            logger.debug("arc updated arc=%s turn=%s kind=%s", arc_id, turn_id, event.kind)
            return ArcUpdateResult(
                success=True,
                updated_arc=updated,
                update_results=update_results,
                failure_detection=detection,
                recovery_options=list(recovery_options),
            )

    def complete_arc(
        self,
        arc_id: str,
        character: CharacterSnapshot | Mapping[str, Any],
        world: WorldStateSnapshot | Mapping[str, Any],
        summary: str,
    ) -> ArcCompletionResult:
        with self._lock:
            try:
                arc = self._store.get(arc_id)
                character = _validated(CharacterSnapshot, character, label="character")
                _validated(WorldStateSnapshot, world, label="world state")

                completing = evolve(arc, status="completing")
                final = analytics.final_arc_metrics(completing)
                rewards = analytics.completion_rewards(final, cfg=self.cfg)
                suggestions = analytics.next_arc_suggestions(completing, character)
                completed = evolve(
                    completing,
                    status="completed",
                    is_completed=True,
                    completion_summary=str(summary),
                )
                store, _ = self._store.remove(arc_id)
                history = (*self._history, completed)
                metrics = analytics.recompute_history_averages(
                    evolve(self._metrics, total_arcs_completed=self._metrics.total_arcs_completed + 1),
                    history,
                )
            except Exception as exc:
                message, code = _error_fields(exc)
                logger.warning("arc completion failed arc=%s code=%s: %s", arc_id, code, message)
                return ArcCompletionResult(success=False, error=message, error_code=code)

            self._store = store
            self._history = history
            self._metrics = metrics
            logger.info("arc completed id=%s duration=%s rewards=%s", arc_id, final.total_duration, len(rewards))
            return ArcCompletionResult(
                success=True,
                completed_arc=completed,
                final_metrics=final,
                rewards=rewards,
                next_arc_suggestions=suggestions,
            )

    # --- support & learning ---

    def record_support_response(self, arc_id: str, support_type: str, effectiveness: float) -> SupportResponseResult:
        with self._lock:
            try:
                arc = self._store.get(arc_id)
                previous = arc.failure_recovery.adaptive_support.support_level
                updated = update_adaptive_support(arc, support_type, effectiveness, cfg=self.cfg)
                store = self._store.replace(updated)
            except Exception as exc:
                message, code = _error_fields(exc)
                logger.warning("support response failed arc=%s code=%s: %s", arc_id, code, message)
                return SupportResponseResult(success=False, error=message, error_code=code)

            self._store = store
            self._metrics = analytics.record_support_outcome(self._metrics, accepted=effectiveness > 0)
            support = updated.failure_recovery.adaptive_support
            if support.support_level != previous:
                logger.info("support level changed arc=%s %s -> %s", arc_id, previous, support.support_level)
            return SupportResponseResult(
                success=True,
                updated_arc=updated,
                previous_level=previous,
                support_level=support.support_level,
                average_effectiveness=average_effectiveness(support),
            )

    def record_learning(self, arc_id: str, behavior: str, outcome: LearningOutcome) -> ArcUpdateResult:
        with self._lock:
            try:
                if outcome not in ("success", "failure"):
                    raise ValidationError(detail=f"unknown learning outcome {outcome!r}")
                arc = self._store.get(arc_id)
                updated = update_learning_system(arc, behavior, outcome, self.learning_strategy)
                store = self._store.replace(updated)
            except Exception as exc:
                message, code = _error_fields(exc)
                logger.warning("learning update failed arc=%s code=%s: %s", arc_id, code, message)
                return ArcUpdateResult(success=False, error=message, error_code=code)

            self._store = store
            system = updated.failure_recovery.learning_system
            return ArcUpdateResult(
                success=True,
                updated_arc=updated,
                update_results=[
                    {
                        "type": "learning",
                        "strategy": self.learning_strategy.name,
                        "hints": [hint.message for hint in system.hints],
                        "skill_gaps": [gap.behavior for gap in system.skill_gaps],
                    }
                ],
            )

    # --- reads ---

    def get_arc(self, arc_id: str) -> Arc | None:
        arc = self._store.find(arc_id)
        if arc is not None:
            return arc
        return next((item for item in self._history if item.id == arc_id), None)

    def list_active_arcs(self) -> list[Arc]:
        return sorted(self._store, key=lambda arc: (arc.character_id, arc.order))

    def history(self) -> tuple[Arc, ...]:
        return self._history

    def get_arc_analytics(self, arc_id: str) -> ArcAnalytics | None:
        arc = self.get_arc(arc_id)
        if arc is None:
            return None
        return analytics.arc_analytics(arc)

    def get_global_arc_metrics(self) -> GlobalArcMetrics:
        return self._metrics

    # --- persistence boundary ---

    def export_snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "version": SNAPSHOT_VERSION,
                "exported_at": utc_now_iso(),
                "active": [arc.model_dump(mode="json") for arc in self.list_active_arcs()],
                "history": [arc.model_dump(mode="json") for arc in self._history],
                "metrics": self._metrics.model_dump(mode="json"),
            }

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any], **kwargs: Any) -> ArcManager:
        if int(data.get("version", SNAPSHOT_VERSION)) != SNAPSHOT_VERSION:
            raise ValidationError(detail=f"unsupported snapshot version {data.get('version')!r}")
        try:
            active = [Arc.model_validate(item) for item in data.get("active") or []]
            history = tuple(Arc.model_validate(item) for item in data.get("history") or [])
            metrics = GlobalArcMetrics.model_validate(data.get("metrics") or {})
        except PydanticValidationError as exc:
            raise ValidationError(detail=f"snapshot: {exc.error_count()} invalid field(s)") from exc

        manager = cls(**kwargs)
        store = ArcStore()
        for arc in active:
            if arc.is_completed:
                raise ValidationError(detail=f"completed arc {arc.id} listed as active")
            store = store.insert(arc)
        overlap = set(store.ids()) & {arc.id for arc in history}
        if overlap:
            raise ValidationError(detail=f"arcs present in both active store and history: {sorted(overlap)}")
        seen_orders: set[tuple[str, int]] = set()
        for arc in (*store, *history):
            key = (arc.character_id, arc.order)
            if key in seen_orders:
                raise ValidationError(detail=f"duplicate arc order {arc.order} for character {arc.character_id}")
            seen_orders.add(key)
        manager._store = store
        manager._history = history
        manager._metrics = metrics
        return manager

    # --- internals ---

    def _all_arcs(self) -> list[Arc]:
        return [*self._store, *self._history]

    def _dispatch(
        self,
        arc: Arc,
        event: UpdateEvent,
        character: CharacterSnapshot,
        world: WorldStateSnapshot,
        turn_id: str,
    ) -> tuple[Arc, dict[str, Any]]:
        if isinstance(event, PlayerChoiceEvent):
            updated = track_player_choice(arc, self._player_choice(arc, event, turn_id), cfg=self.cfg)
            return updated, {
                "type": "player_choice",
                "agency_score": updated.agency_score,
                "significant": event.agency_score >= 7,
            }
        if isinstance(event, CombatResultEvent):
            return self._integration_payload(integrate_combat(arc, event, character, world, turn_id=turn_id, cfg=self.cfg))
        if isinstance(event, QuestEvent):
            return self._integration_payload(integrate_quest(arc, event, character, world, turn_id=turn_id))
        if isinstance(event, ProgressionEvent):
            return self._integration_payload(integrate_progression(arc, event, character, world))
        if isinstance(event, RelationshipEvent):
            return self._integration_payload(integrate_relationship(arc, event, character, world))
        if isinstance(event, InventoryEvent):
            return self._integration_payload(integrate_inventory(arc, event, character, world))
        raise IntegrationError(adapter="arc_manager", event_kind=str(getattr(event, "kind", type(event).__name__)))

    @staticmethod
    def _integration_payload(result: IntegrationResult) -> tuple[Arc, dict[str, Any]]:
        return result.updated_arc, {"type": result.kind, "side_effects": result.side_effects}

    @staticmethod
    def _player_choice(arc: Arc, event: PlayerChoiceEvent, turn_id: str) -> ArcPlayerChoice:
        sequence = arc.progression.metrics.total_choices_made + 1
        return ArcPlayerChoice(
            id=f"{arc.id}:choice-{sequence}",
            turn_id=turn_id,
            timestamp=utc_now_iso(),
            phase_id=arc.progression.current_phase_id,
            choice_text=event.choice_text,
            choice_description=event.choice_description,
            alternatives=event.alternatives,
            consequences=event.consequences,
            impact_scope=event.impact_scope,
            moral_alignment=event.moral_alignment,
            difficulty_influence=event.difficulty_influence,
            agency_score=event.agency_score,
            narrative_weight=event.narrative_weight,
        )

