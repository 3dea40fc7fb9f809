from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from storyarc.modules.arc.errors import NotFoundError, ValidationError
from storyarc.modules.arc.schemas import Arc


class ArcStore:
    """Immutable id-keyed table of active arcs.

    Every write returns a new store; the previous one stays valid, so a
    failed update can simply keep the old reference.
    """

    __slots__ = ("_arcs",)

    def __init__(self, arcs: Mapping[str, Arc] | None = None) -> None:
        self._arcs: Mapping[str, Arc] = MappingProxyType(dict(arcs or {}))

    def __contains__(self, arc_id: object) -> bool:
        return arc_id in self._arcs

    def __len__(self) -> int:
        return len(self._arcs)

    def __iter__(self) -> Iterator[Arc]:
        return iter(self._arcs.values())

    def get(self, arc_id: str) -> Arc:
        arc = self._arcs.get(arc_id)
        if arc is None:
            raise NotFoundError(arc_id)
        return arc

    def find(self, arc_id: str) -> Arc | None:
        return self._arcs.get(arc_id)

    def ids(self) -> tuple[str, ...]:
        return tuple(self._arcs)

    def insert(self, arc: Arc) -> ArcStore:
        if arc.id in self._arcs:
            raise ValidationError(detail=f"arc {arc.id} is already active")
        return ArcStore({**self._arcs, arc.id: arc})

    def replace(self, arc: Arc) -> ArcStore:
        if arc.id not in self._arcs:
            raise NotFoundError(arc.id)
        return ArcStore({**self._arcs, arc.id: arc})

    def remove(self, arc_id: str) -> tuple[ArcStore, Arc]:
        arc = self.get(arc_id)
        remaining = {key: value for key, value in self._arcs.items() if key != arc_id}
        return ArcStore(remaining), arc
