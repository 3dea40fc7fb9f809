from __future__ import annotations

import logging
import uuid
from dataclasses import asdict
from threading import Lock
from typing import Any, NoReturn

from fastapi import HTTPException

from storyarc.modules.arc.errors import ARC_INPUT_INVALID, ARC_NOT_FOUND, ArcEngineError
from storyarc.modules.arc.models import (
    ArcAnalytics,
    ArcCompletionResult,
    ArcCreationResult,
    ArcUpdateResult,
    FailureDetectionResult,
    SupportResponseResult,
)
from storyarc.modules.arc.snapshots import ArcGenerationInput
from storyarc.modules.manager.service import ArcManager
from storyarc.modules.sessions.schemas import (
    ArcCompleteRequest,
    ArcUpdateRequest,
    LearningRequest,
    SnapshotImportRequest,
    SupportResponseRequest,
)
from storyarc.utils.time import utc_now_aware

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    ARC_NOT_FOUND: 404,
    ARC_INPUT_INVALID: 422,
}


class _ArcSessionRegistry:
    def __init__(self) -> None:
        self._lock = Lock()
        self._managers: dict[uuid.UUID, ArcManager] = {}

    def reset(self) -> None:
        with self._lock:
            self._managers = {}

    def open(self, manager: ArcManager | None = None) -> tuple[uuid.UUID, ArcManager]:
        session_id = uuid.uuid4()
        if manager is None:
            manager = ArcManager(session_id=str(session_id))
        else:
            manager.session_id = str(session_id)
        with self._lock:
            self._managers[session_id] = manager
        logger.info("arc session opened id=%s", session_id)
        return session_id, manager

    def get(self, session_id: uuid.UUID) -> ArcManager:
        with self._lock:
            manager = self._managers.get(session_id)
        if manager is None:
            raise HTTPException(status_code=404, detail={"code": "SESSION_NOT_FOUND"})
        return manager

    def close(self, session_id: uuid.UUID) -> None:
        with self._lock:
            removed = self._managers.pop(session_id, None)
        if removed is None:
            raise HTTPException(status_code=404, detail={"code": "SESSION_NOT_FOUND"})
        logger.info("arc session closed id=%s", session_id)


_registry = _ArcSessionRegistry()


def reset_arc_sessions() -> None:
    _registry.reset()


def _raise_for_failure(error: str | None, error_code: str | None) -> NoReturn:
    code = error_code or "ARC_INTERNAL_ERROR"
    raise HTTPException(
        status_code=_ERROR_STATUS.get(code, 400),
        detail={"code": code, "message": error or ""},
    )


def _detection_payload(detection: FailureDetectionResult | None) -> dict | None:
    if detection is None:
        return None
    return {
        "failures": [asdict(item) for item in detection.failures],
        "warnings": [asdict(item) for item in detection.warnings],
        "recommendations": [asdict(item) for item in detection.recommendations],
        "metrics": detection.metrics.as_dict(),
    }


def _analytics_payload(item: ArcAnalytics) -> dict:
    return asdict(item)


def create_session() -> dict:
    session_id, manager = _registry.open()
    return {"session_id": session_id, "created_at": utc_now_aware(), "active_arcs": len(manager.list_active_arcs())}


def import_session(payload: SnapshotImportRequest) -> dict:
    try:
        manager = ArcManager.from_snapshot(payload.model_dump())
    except ArcEngineError as exc:
        _raise_for_failure(exc.message, exc.code)
    session_id, manager = _registry.open(manager)
    return {"session_id": session_id, "created_at": utc_now_aware(), "active_arcs": len(manager.list_active_arcs())}


def close_session(session_id: uuid.UUID) -> dict:
    _registry.close(session_id)
    return {"session_id": str(session_id), "closed": True}


def list_arcs(session_id: uuid.UUID) -> list[dict]:
    manager = _registry.get(session_id)
    return [arc.model_dump(mode="json") for arc in manager.list_active_arcs()]


def create_arc(session_id: uuid.UUID, payload: ArcGenerationInput) -> dict:
    manager = _registry.get(session_id)
    result: ArcCreationResult = manager.create_arc(payload)
    if not result.success:
        _raise_for_failure(result.error, result.error_code)
    generation = result.generation
    return {
        "arc": result.arc.model_dump(mode="json"),
        "archetype": generation.archetype,
        "generation_reasoning": generation.generation_reasoning,
        "adaptation_notes": list(generation.adaptation_notes),
        "integration_suggestions": list(generation.integration_suggestions),
        "quality_metrics": generation.quality_metrics.model_dump(mode="json"),
    }


def get_arc(session_id: uuid.UUID, arc_id: str) -> dict:
    manager = _registry.get(session_id)
    arc = manager.get_arc(arc_id)
    if arc is None:
        _raise_for_failure(f"Arc not found: {arc_id}", ARC_NOT_FOUND)
    return arc.model_dump(mode="json")


def update_arc(session_id: uuid.UUID, arc_id: str, payload: ArcUpdateRequest) -> dict:
    manager = _registry.get(session_id)
    result: ArcUpdateResult = manager.update_arc(
        arc_id,
        payload.character,
        payload.world_state,
        payload.turn_id,
        payload.event,
    )
    if not result.success:
        _raise_for_failure(result.error, result.error_code)
    return {
        "success": True,
        "updated_arc": result.updated_arc.model_dump(mode="json"),
        "update_results": result.update_results,
        "failure_detection": _detection_payload(result.failure_detection),
        "recovery_options": [option.model_dump(mode="json") for option in result.recovery_options],
    }


def complete_arc(session_id: uuid.UUID, arc_id: str, payload: ArcCompleteRequest) -> dict:
    manager = _registry.get(session_id)
    result: ArcCompletionResult = manager.complete_arc(arc_id, payload.character, payload.world_state, payload.summary)
    if not result.success:
        _raise_for_failure(result.error, result.error_code)
    return {
        "success": True,
        "completed_arc": result.completed_arc.model_dump(mode="json"),
        "final_metrics": asdict(result.final_metrics),
        "rewards": [asdict(reward) for reward in result.rewards],
        "next_arc_suggestions": list(result.next_arc_suggestions),
    }


def record_support_response(session_id: uuid.UUID, arc_id: str, payload: SupportResponseRequest) -> dict:
    manager = _registry.get(session_id)
    result: SupportResponseResult = manager.record_support_response(arc_id, payload.support_type, payload.effectiveness)
    if not result.success:
        _raise_for_failure(result.error, result.error_code)
    return {
        "previous_level": result.previous_level,
        "support_level": result.support_level,
        "average_effectiveness": result.average_effectiveness,
    }


def record_learning(session_id: uuid.UUID, arc_id: str, payload: LearningRequest) -> dict:
    manager = _registry.get(session_id)
    result = manager.record_learning(arc_id, payload.behavior, payload.outcome)
    if not result.success:
        _raise_for_failure(result.error, result.error_code)
    return result.update_results[0]


def arc_analytics(session_id: uuid.UUID, arc_id: str) -> dict:
    manager = _registry.get(session_id)
    item = manager.get_arc_analytics(arc_id)
    if item is None:
        _raise_for_failure(f"Arc not found: {arc_id}", ARC_NOT_FOUND)
    return _analytics_payload(item)


def global_metrics(session_id: uuid.UUID) -> dict:
    manager = _registry.get(session_id)
    return manager.get_global_arc_metrics().model_dump(mode="json")


def export_snapshot(session_id: uuid.UUID) -> dict[str, Any]:
    manager = _registry.get(session_id)
    return manager.export_snapshot()
