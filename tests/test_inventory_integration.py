from __future__ import annotations

from storyarc.modules.arc.events import InventoryEvent
from storyarc.modules.arc.schemas import (
    CraftingOpportunity,
    EquipmentProgression,
    EquipmentTier,
    InventoryIntegration,
    KeyItem,
    UnlockCondition,
    evolve,
)
from storyarc.modules.integration.inventory import integrate_inventory
from tests.support.arc_factories import make_arc, make_character, make_world


def _arc_with(integration: InventoryIntegration):
    arc = make_arc()
    return evolve(arc, integration_points=evolve(arc.integration_points, inventory=integration))


def test_inventory_event_surfaces_items_recipes_and_tiers() -> None:
    integration = InventoryIntegration(
        key_items=(
            KeyItem(item_id="sunstone", name="Sunstone"),
            KeyItem(
                item_id="moonstone",
                name="Moonstone",
                unlock_conditions=(UnlockCondition(type="arc_progress", value=50),),
            ),
        ),
        crafting_opportunities=(
            CraftingOpportunity(
                recipe_id="lantern",
                name="Sun Lantern",
                unlock_conditions=(UnlockCondition(type="character_level", value=5),),
            ),
        ),
        equipment_progression=(
            EquipmentProgression(
                equipment_id="blade",
                progression_path=(
                    EquipmentTier(tier=1, name="Worn blade"),
                    EquipmentTier(
                        tier=2,
                        name="Tempered blade",
                        unlock_conditions=(UnlockCondition(type="character_level", value=8),),
                    ),
                ),
            ),
        ),
    )

    result = integrate_inventory(_arc_with(integration), InventoryEvent(item_id="sunstone"), make_character(), make_world())

    assert result.side_effects == [
        {"type": "key_item", "item_id": "sunstone", "name": "Sunstone", "triggered_by_event": True},
        {"type": "crafting_opportunity", "recipe_id": "lantern", "name": "Sun Lantern"},
        {"type": "equipment_tier_unlocked", "equipment_id": "blade", "tier": 1},
    ]
    assert result.updated_arc.integration_points.inventory.equipment_progression[0].current_tier == 1

    again = integrate_inventory(result.updated_arc, InventoryEvent(item_id="rope"), make_character(), make_world())
    assert [effect["type"] for effect in again.side_effects] == ["key_item", "crafting_opportunity"]
    assert again.side_effects[0]["triggered_by_event"] is False
