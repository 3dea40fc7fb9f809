from __future__ import annotations

from storyarc.modules.arc.events import RelationshipEvent
from storyarc.modules.arc.schemas import (
    EmotionalBeat,
    KeyRelationship,
    RelationshipIntegration,
    SocialDynamic,
    UnlockCondition,
    evolve,
)
from storyarc.modules.arc.snapshots import FactionStanding
from storyarc.modules.integration.relationship import integrate_relationship
from tests.support.arc_factories import make_arc, make_character, make_world


def _arc_with(integration: RelationshipIntegration):
    arc = make_arc()
    return evolve(arc, integration_points=evolve(arc.integration_points, relationship=integration))


def test_positive_event_improves_dynamics_and_triggers_beats() -> None:
    integration = RelationshipIntegration(
        key_relationships=(KeyRelationship(npc_id="lena", importance=8), KeyRelationship(npc_id="oskar")),
        social_dynamics=(
            SocialDynamic(dynamic_id="rivals", participants=("lena", "oskar")),
            SocialDynamic(dynamic_id="court", participants=("queen",)),
        ),
        emotional_beats=(
            EmotionalBeat(
                beat_id="confession",
                description="Lena admits her fear",
                trigger=UnlockCondition(type="choice_made", value="comfort lena"),
            ),
        ),
    )
    world = make_world(choices=("Comfort Lena by the fire",))

    result = integrate_relationship(
        _arc_with(integration),
        RelationshipEvent(npc_id="lena", sentiment="positive"),
        make_character(),
        world,
    )

    impacts = [effect for effect in result.side_effects if effect["type"] == "relationship_impact"]
    assert [(item["npc_id"], item["direct"]) for item in impacts] == [("lena", True), ("oskar", False)]
    assert impacts[0]["development_opportunity"] == "growth"
    dynamics = result.updated_arc.integration_points.relationship.social_dynamics
    assert (dynamics[0].current_state, dynamics[0].player_influence) == ("improving", 55.0)
    assert dynamics[1].current_state == "stable"
    assert [effect["beat_id"] for effect in result.side_effects if effect["type"] == "emotional_beat"] == ["confession"]


def test_reputation_change_is_clamped() -> None:
    world = make_world(faction_standings=(FactionStanding(faction_id="guild", reputation_score=90),))

    raised = integrate_relationship(
        make_arc(),
        RelationshipEvent(npc_id="envoy", faction_id="guild", reputation_delta=30),
        make_character(),
        world,
    )
    lowered = integrate_relationship(
        make_arc(),
        RelationshipEvent(npc_id="envoy", faction_id="crown", reputation_delta=-150),
        make_character(),
        world,
    )

    assert raised.side_effects[0] == {"type": "reputation_change", "faction_id": "guild", "reputation_score": 100}
    assert lowered.side_effects[0]["reputation_score"] == -100


def test_negative_event_strains_dynamics() -> None:
    integration = RelationshipIntegration(social_dynamics=(SocialDynamic(dynamic_id="pact", participants=("oskar",), player_influence=2.0),))
    result = integrate_relationship(
        _arc_with(integration),
        RelationshipEvent(npc_id="oskar", sentiment="negative"),
        make_character(),
        make_world(),
    )
    dynamic = result.updated_arc.integration_points.relationship.social_dynamics[0]
    assert (dynamic.current_state, dynamic.player_influence) == ("strained", 0.0)
