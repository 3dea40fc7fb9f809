from __future__ import annotations

from storyarc.modules.arc.errors import IntegrationError
from storyarc.modules.arc.events import InventoryEvent
from storyarc.modules.arc.models import IntegrationResult
from storyarc.modules.arc.schemas import Arc, EquipmentProgression, evolve
from storyarc.modules.arc.snapshots import CharacterSnapshot, WorldStateSnapshot
from storyarc.modules.integration.conditions import all_conditions_met

ADAPTER_NAME = "inventory"


def _highest_open_tier(
    progression: EquipmentProgression,
    arc: Arc,
    character: CharacterSnapshot,
    world: WorldStateSnapshot,
) -> int:
    open_tiers = [
        tier.tier
        for tier in progression.progression_path
        if all_conditions_met(tier.unlock_conditions, arc, character, world)
    ]
    return max(open_tiers, default=0)


def integrate_inventory(
    arc: Arc,
    event: InventoryEvent,
    character: CharacterSnapshot,
    world: WorldStateSnapshot,
) -> IntegrationResult:
    if getattr(event, "kind", None) != "inventory_event":
        raise IntegrationError(adapter=ADAPTER_NAME, event_kind=str(getattr(event, "kind", type(event).__name__)))
    integration = arc.integration_points.inventory
    if integration is None:
        return IntegrationResult(kind=ADAPTER_NAME, updated_arc=arc)

    side_effects: list[dict] = []
    for item in integration.key_items:
        if all_conditions_met(item.unlock_conditions, arc, character, world):
            side_effects.append(
                {
                    "type": "key_item",
                    "item_id": item.item_id,
                    "name": item.name,
                    "triggered_by_event": item.item_id == event.item_id,
                }
            )
    for recipe in integration.crafting_opportunities:
        if all_conditions_met(recipe.unlock_conditions, arc, character, world):
            side_effects.append({"type": "crafting_opportunity", "recipe_id": recipe.recipe_id, "name": recipe.name})

    equipment: list[EquipmentProgression] = []
    for progression in integration.equipment_progression:
        tier = _highest_open_tier(progression, arc, character, world)
        if tier > progression.current_tier:
            side_effects.append(
                {
                    "type": "equipment_tier_unlocked",
                    "equipment_id": progression.equipment_id,
                    "tier": tier,
                }
            )
            progression = evolve(progression, current_tier=tier)
        equipment.append(progression)

    updated = evolve(
        arc,
        integration_points=evolve(
            arc.integration_points,
            inventory=evolve(integration, equipment_progression=tuple(equipment)),
        ),
    )
    return IntegrationResult(kind=ADAPTER_NAME, updated_arc=updated, side_effects=side_effects)
