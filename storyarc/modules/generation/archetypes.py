from __future__ import annotations

from dataclasses import dataclass

from storyarc.modules.arc.schemas import Arc, ConsequenceWeight, NarrativeWeight
from storyarc.modules.arc.snapshots import ArcGenerationInput

CRISIS_THREAT_LEVEL = 8
GROWTH_MAX_LEVEL = 3
INTROSPECTION_WINDOW = 3


@dataclass(slots=True, frozen=True)
class ArcTemplate:
    archetype: str
    title: str
    description: str
    thematic_tags: tuple[str, ...]
    consequence_weight: ConsequenceWeight
    player_choice_influence: float


@dataclass(slots=True, frozen=True)
class PhaseTemplate:
    key: str
    name: str
    description: str
    narrative_weight: NarrativeWeight
    estimated_duration: int
    difficulty_modifier: float
    seed_objective: str


ARC_TEMPLATES: dict[str, ArcTemplate] = {
    "crisis_arc": ArcTemplate(
        archetype="crisis_arc",
        title="The {location} Crisis",
        description="A major threat emerges that requires immediate attention and decisive action.",
        thematic_tags=("urgency", "sacrifice", "heroism"),
        consequence_weight="heavy",
        player_choice_influence=85,
    ),
    "growth_arc": ArcTemplate(
        archetype="growth_arc",
        title="Trials of {name}",
        description="A journey of personal growth and skill development.",
        thematic_tags=("growth", "learning", "perseverance"),
        consequence_weight="moderate",
        player_choice_influence=70,
    ),
    "character_arc": ArcTemplate(
        archetype="character_arc",
        title="Bonds and Revelations",
        description="Deep character development and relationship exploration.",
        thematic_tags=("relationships", "identity", "understanding"),
        consequence_weight="moderate",
        player_choice_influence=90,
    ),
    "mystery_arc": ArcTemplate(
        archetype="mystery_arc",
        title="The {location} Mystery",
        description="Unraveling secrets and solving complex puzzles.",
        thematic_tags=("mystery", "discovery", "truth"),
        consequence_weight="light",
        player_choice_influence=75,
    ),
    "political_arc": ArcTemplate(
        archetype="political_arc",
        title="Winds of Change",
        description="Navigating complex political situations and power dynamics.",
        thematic_tags=("power", "diplomacy", "consequence"),
        consequence_weight="heavy",
        player_choice_influence=80,
    ),
    "relationship_arc": ArcTemplate(
        archetype="relationship_arc",
        title="Hearts and Minds",
        description="Exploring deep relationships and emotional connections.",
        thematic_tags=("love", "friendship", "loyalty"),
        consequence_weight="moderate",
        player_choice_influence=95,
    ),
    "adventure_arc": ArcTemplate(
        archetype="adventure_arc",
        title="The {location} Adventure",
        description="An exciting journey filled with challenges and discoveries.",
        thematic_tags=("adventure", "discovery", "courage"),
        consequence_weight="moderate",
        player_choice_influence=75,
    ),
    "introspective_arc": ArcTemplate(
        archetype="introspective_arc",
        title="Moments of Reflection",
        description="A quieter arc focused on internal growth and contemplation.",
        thematic_tags=("reflection", "wisdom", "peace"),
        consequence_weight="light",
        player_choice_influence=60,
    ),
}

PHASE_TEMPLATES: tuple[PhaseTemplate, ...] = (
    PhaseTemplate(
        key="introduction",
        name="Introduction",
        description="Setting the stage and introducing key elements",
        narrative_weight="setup",
        estimated_duration=3,
        difficulty_modifier=-1.0,
        seed_objective="Learn about the situation in {location}",
    ),
    PhaseTemplate(
        key="development",
        name="Development",
        description="Building tension and developing the central conflict",
        narrative_weight="rising_action",
        estimated_duration=5,
        difficulty_modifier=0.0,
        seed_objective="Investigate the central mystery or conflict",
    ),
    PhaseTemplate(
        key="climax",
        name="Climax",
        description="The peak of tension and the major confrontation",
        narrative_weight="climax",
        estimated_duration=3,
        difficulty_modifier=2.0,
        seed_objective="Confront the main challenge or antagonist",
    ),
    PhaseTemplate(
        key="resolution",
        name="Resolution",
        description="Wrapping up loose ends and showing consequences",
        narrative_weight="resolution",
        estimated_duration=2,
        difficulty_modifier=-1.0,
        seed_objective="Resolve the consequences of your actions",
    ),
)

_STYLE_ARCHETYPES = {
    "character_driven": "character_arc",
    "mystery": "mystery_arc",
    "political": "political_arc",
    "romantic": "relationship_arc",
}


def _recent_arcs_share_theme(previous_arcs: tuple[Arc, ...]) -> bool:
    if len(previous_arcs) < INTROSPECTION_WINDOW:
        return False
    recent = sorted(previous_arcs, key=lambda arc: arc.order)[-INTROSPECTION_WINDOW:]
    shared = set(recent[0].thematic_tags)
    for arc in recent[1:]:
        shared &= set(arc.thematic_tags)
    return bool(shared)


def select_arc_archetype(payload: ArcGenerationInput) -> tuple[str, str]:
    """Pick an archetype by first matching rule; returns ``(archetype, reason)``."""
    threat = payload.world_state.threat_level
    if threat >= CRISIS_THREAT_LEVEL:
        return "crisis_arc", f"world threat level {threat} demands a crisis"
    level = payload.character.level
    if level <= GROWTH_MAX_LEVEL:
        return "growth_arc", f"character level {level} calls for a growth arc"
    style = payload.player_preferences.preferred_narrative_style
    if style in _STYLE_ARCHETYPES:
        return _STYLE_ARCHETYPES[style], f"player prefers {style} stories"
    if _recent_arcs_share_theme(payload.previous_arcs):
        return "introspective_arc", "the last arcs repeated one theme"
    return "adventure_arc", "no stronger signal; defaulting to adventure"


def render_template_text(text: str, payload: ArcGenerationInput) -> str:
    return text.format(location=payload.world_state.current_location, name=payload.character.name)
