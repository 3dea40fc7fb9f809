from __future__ import annotations

import pytest

from storyarc.modules.arc.errors import NotFoundError, ValidationError
from storyarc.modules.arc.schemas import evolve
from storyarc.modules.manager.store import ArcStore
from tests.support.arc_factories import make_arc


def test_writes_return_new_stores() -> None:
    empty = ArcStore()
    arc = make_arc("arc-a")

    store = empty.insert(arc)
    assert len(empty) == 0
    assert "arc-a" in store
    assert store.get("arc-a") is arc

    renamed = evolve(arc, title="Renamed")
    replaced = store.replace(renamed)
    assert store.get("arc-a").title == "Arc arc-a"
    assert replaced.get("arc-a").title == "Renamed"

    remaining, removed = replaced.remove("arc-a")
    assert removed is renamed
    assert len(remaining) == 0
    assert "arc-a" in replaced


def test_duplicate_insert_is_rejected() -> None:
    store = ArcStore().insert(make_arc("arc-a"))
    with pytest.raises(ValidationError):
        store.insert(make_arc("arc-a"))


def test_missing_arc_raises_not_found() -> None:
    store = ArcStore()
    assert store.find("ghost") is None
    with pytest.raises(NotFoundError) as exc_info:
        store.get("ghost")
    assert exc_info.value.code == "ARC_NOT_FOUND"
    with pytest.raises(NotFoundError):
        store.replace(make_arc("ghost"))
    with pytest.raises(NotFoundError):
        store.remove("ghost")


def test_iteration_and_ids_follow_insertion_order() -> None:
    store = ArcStore().insert(make_arc("arc-a")).insert(make_arc("arc-b", order=2))
    assert store.ids() == ("arc-a", "arc-b")
    assert [arc.id for arc in store] == ["arc-a", "arc-b"]
