from __future__ import annotations

from collections.abc import Iterable

from storyarc.modules.arc.schemas import Arc, UnlockCondition
from storyarc.modules.arc.snapshots import CharacterSnapshot, WorldStateSnapshot


def _as_number(value) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def _choice_texts(arc: Arc, world: WorldStateSnapshot | None) -> list[str]:
    texts = [choice.choice_text for choice in arc.progression.player_choice_history]
    if world is not None:
        texts.extend(choice.choice_text for choice in world.player_choices)
    return texts


def evaluate_unlock_condition(
    condition: UnlockCondition,
    arc: Arc,
    character: CharacterSnapshot | None = None,
    world: WorldStateSnapshot | None = None,
) -> bool:
    """Shared gate check for every integration adapter."""
    if condition.type == "arc_progress":
        target = _as_number(condition.value)
        return target is not None and arc.progression.total_progress >= target
    if condition.type == "character_level":
        target = _as_number(condition.value)
        return character is not None and target is not None and character.level >= target
    if condition.type == "choice_made":
        needle = str(condition.value).strip().lower()
        if not needle:
            return False
        return any(needle in text.lower() for text in _choice_texts(arc, world))
    return False


def all_conditions_met(
    conditions: Iterable[UnlockCondition],
    arc: Arc,
    character: CharacterSnapshot | None = None,
    world: WorldStateSnapshot | None = None,
) -> bool:
    return all(evaluate_unlock_condition(condition, arc, character, world) for condition in conditions)


def any_condition_met(
    conditions: Iterable[UnlockCondition],
    arc: Arc,
    character: CharacterSnapshot | None = None,
    world: WorldStateSnapshot | None = None,
) -> bool:
    return any(evaluate_unlock_condition(condition, arc, character, world) for condition in conditions)
