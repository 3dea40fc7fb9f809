from __future__ import annotations

from storyarc.modules.arc.models import DetectedFailure
from storyarc.modules.arc.schemas import Arc, RecoveryCost, RecoveryOption
from storyarc.modules.arc.snapshots import CharacterSnapshot, WorldStateSnapshot

_RECOVERY_CATALOG: dict[str, tuple[dict, ...]] = {
    "objective_failures": (
        {
            "name": "Guidance System",
            "description": "Receive detailed guidance on current objectives",
            "recovery_type": "guidance",
            "cost": {"type": "none", "amount": 0, "description": "Free guidance"},
            "effectiveness": 70,
            "narrative_integration": "A helpful ally provides strategic advice",
            "player_choice_required": True,
        },
        {
            "name": "Difficulty Reduction",
            "description": "Temporarily reduce the difficulty of current challenges",
            "recovery_type": "difficulty_reduction",
            "cost": {"type": "narrative_consequence", "amount": 1, "description": "Reduced sense of achievement"},
            "effectiveness": 85,
            "narrative_integration": "Circumstances shift to make challenges more manageable",
            "player_choice_required": True,
        },
    ),
    "resource_depletion": (
        {
            "name": "Resource Cache",
            "description": "Discover a hidden cache of useful resources",
            "recovery_type": "resource_boost",
            "cost": {"type": "none", "amount": 0, "description": "Lucky discovery"},
            "effectiveness": 60,
            "narrative_integration": "You stumble upon supplies left by previous travelers",
            "player_choice_required": False,
        },
    ),
    "relationship_breakdown": (
        {
            "name": "Mediation Opportunity",
            "description": "A chance to repair damaged relationships",
            "recovery_type": "narrative_intervention",
            "cost": {"type": "time", "amount": 2, "description": "2 turns of focused relationship work"},
            "effectiveness": 75,
            "narrative_integration": "A mutual friend offers to help mediate the conflict",
            "player_choice_required": True,
        },
    ),
}


def recovery_option_id(arc_id: str, metric: str, recovery_type: str) -> str:
    return f"{arc_id}:{metric}:{recovery_type}"


def options_for_failure(
    failure: DetectedFailure,
    arc: Arc,
    character: CharacterSnapshot,
    world: WorldStateSnapshot,
) -> list[RecoveryOption]:
    """Return the fixed remediation set for ``failure.metric``; unknown metrics get none."""
    options: list[RecoveryOption] = []
    for entry in _RECOVERY_CATALOG.get(failure.metric, ()):
        options.append(
            RecoveryOption(
                id=recovery_option_id(arc.id, failure.metric, entry["recovery_type"]),
                name=entry["name"],
                description=entry["description"],
                recovery_type=entry["recovery_type"],
                trigger_conditions=(failure.metric,),
                cost=RecoveryCost(**entry["cost"]),
                effectiveness=float(entry["effectiveness"]),
                narrative_integration=entry["narrative_integration"],
                player_choice_required=bool(entry["player_choice_required"]),
            )
        )
    return options


def generate_recovery_options(
    arc: Arc,
    failures: tuple[DetectedFailure, ...] | list[DetectedFailure],
    character: CharacterSnapshot,
    world: WorldStateSnapshot,
) -> list[RecoveryOption]:
    options: list[RecoveryOption] = []
    seen: set[str] = set()
    for failure in failures:
        for option in options_for_failure(failure, arc, character, world):
            if option.id in seen:
                continue
            seen.add(option.id)
            options.append(option)
    return options
