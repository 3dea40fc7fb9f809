import uuid

from fastapi import APIRouter

from storyarc.modules.arc.snapshots import ArcGenerationInput
from storyarc.modules.sessions import service
from storyarc.modules.sessions.schemas import (
    ArcCompleteRequest,
    ArcUpdateRequest,
    LearningRequest,
    SessionCreateOut,
    SnapshotImportRequest,
    SupportResponseRequest,
)

router = APIRouter(prefix="/api/v1/arc-sessions", tags=["arc-sessions"])


@router.post("", response_model=SessionCreateOut)
def create_session():
    return service.create_session()


@router.post("/import", response_model=SessionCreateOut)
def import_session(payload: SnapshotImportRequest):
    return service.import_session(payload)


@router.delete("/{session_id}")
def close_session(session_id: uuid.UUID):
    return service.close_session(session_id)


@router.get("/{session_id}/arcs")
def list_arcs(session_id: uuid.UUID):
    return {"arcs": service.list_arcs(session_id)}


@router.post("/{session_id}/arcs")
def create_arc(session_id: uuid.UUID, payload: ArcGenerationInput):
    return service.create_arc(session_id, payload)


@router.get("/{session_id}/arcs/{arc_id}")
def get_arc(session_id: uuid.UUID, arc_id: str):
    return service.get_arc(session_id, arc_id)


@router.post("/{session_id}/arcs/{arc_id}/updates")
def update_arc(session_id: uuid.UUID, arc_id: str, payload: ArcUpdateRequest):
    return service.update_arc(session_id, arc_id, payload)


@router.post("/{session_id}/arcs/{arc_id}/complete")
def complete_arc(session_id: uuid.UUID, arc_id: str, payload: ArcCompleteRequest):
    return service.complete_arc(session_id, arc_id, payload)


@router.post("/{session_id}/arcs/{arc_id}/support-responses")
def record_support_response(session_id: uuid.UUID, arc_id: str, payload: SupportResponseRequest):
    return service.record_support_response(session_id, arc_id, payload)


@router.post("/{session_id}/arcs/{arc_id}/learning")
def record_learning(session_id: uuid.UUID, arc_id: str, payload: LearningRequest):
    return service.record_learning(session_id, arc_id, payload)


@router.get("/{session_id}/arcs/{arc_id}/analytics")
def arc_analytics(session_id: uuid.UUID, arc_id: str):
    return service.arc_analytics(session_id, arc_id)


@router.get("/{session_id}/metrics")
def global_metrics(session_id: uuid.UUID):
    return service.global_metrics(session_id)


@router.get("/{session_id}/snapshot")
def export_snapshot(session_id: uuid.UUID):
    return service.export_snapshot(session_id)
