from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal

from storyarc.config import Settings, settings as default_settings
from storyarc.modules.arc.schemas import (
    SUPPORT_LEVELS,
    AdaptiveHint,
    AdaptiveSupport,
    Arc,
    LearningSystem,
    PlayerPattern,
    SkillGap,
    SupportTracking,
    evolve,
)

LearningOutcome = Literal["success", "failure"]


def _running_average(tracking: SupportTracking, effectiveness: float) -> float:
    # The first sample replaces the neutral prior.
    if tracking.times_offered <= 0:
        return effectiveness
    count = tracking.times_offered + 1
    return tracking.success_rate + (effectiveness - tracking.success_rate) / count


def _record_response(tracking: SupportTracking, effectiveness: float) -> SupportTracking:
    return evolve(
        tracking,
        times_offered=tracking.times_offered + 1,
        times_accepted=tracking.times_accepted + (1 if effectiveness > 0 else 0),
        success_rate=_running_average(tracking, effectiveness),
    )


def average_effectiveness(support: AdaptiveSupport) -> float:
    if not support.effectiveness_tracking:
        return 0.0
    total = sum(entry.success_rate for entry in support.effectiveness_tracking)
    return total / len(support.effectiveness_tracking)


def next_support_level(level: str, average: float, *, cfg: Settings | None = None) -> str:
    """Move at most one step along the support ladder."""
    cfg = cfg or default_settings
    idx = SUPPORT_LEVELS.index(level)
    if average < cfg.support_raise_below and idx < len(SUPPORT_LEVELS) - 1:
        return SUPPORT_LEVELS[idx + 1]
    if average > cfg.support_lower_above and idx > 0:
        return SUPPORT_LEVELS[idx - 1]
    return level


def update_adaptive_support(
    arc: Arc,
    response_type: str,
    effectiveness: float,
    *,
    cfg: Settings | None = None,
) -> Arc:
    effectiveness = max(0.0, min(1.0, float(effectiveness)))
    support = arc.failure_recovery.adaptive_support

    tracking: list[SupportTracking] = []
    matched = False
    for entry in support.effectiveness_tracking:
        if entry.support_type == response_type:
            entry = _record_response(entry, effectiveness)
            matched = True
        tracking.append(entry)
    if not matched:
        tracking.append(_record_response(SupportTracking(support_type=response_type), effectiveness))

    support_types = support.support_types
    if response_type not in support_types:
        support_types = (*support_types, response_type)

    updated = evolve(support, support_types=support_types, effectiveness_tracking=tuple(tracking))
    updated = evolve(
        updated,
        support_level=next_support_level(updated.support_level, average_effectiveness(updated), cfg=cfg),
    )
    return evolve(arc, failure_recovery=evolve(arc.failure_recovery, adaptive_support=updated))


class LearningStrategy(ABC):
    """Turns observed player behaviour into hints and skill gaps."""

    name: str

    @abstractmethod
    def observe(self, system: LearningSystem, behavior: str, outcome: LearningOutcome) -> LearningSystem:
        pass


class NullLearningStrategy(LearningStrategy):
    name = "null"

    def observe(self, system: LearningSystem, behavior: str, outcome: LearningOutcome) -> LearningSystem:
        return system


class PatternTallyStrategy(LearningStrategy):
    name = "pattern_tally"

    def __init__(self, *, hint_after_failures: int = 3, gap_min_samples: int = 4, gap_failure_share: float = 0.5) -> None:
        self.hint_after_failures = int(hint_after_failures)
        self.gap_min_samples = int(gap_min_samples)
        self.gap_failure_share = float(gap_failure_share)

    def _tally(self, patterns: tuple[PlayerPattern, ...], behavior: str, outcome: LearningOutcome) -> tuple[PlayerPattern, ...]:
        succeeded = outcome == "success"
        out: list[PlayerPattern] = []
        found = False
        for pattern in patterns:
            if pattern.behavior == behavior:
                pattern = evolve(
                    pattern,
                    attempts=pattern.attempts + 1,
                    successes=pattern.successes + (1 if succeeded else 0),
                    failures=pattern.failures + (0 if succeeded else 1),
                )
                found = True
            out.append(pattern)
        if not found:
            out.append(
                PlayerPattern(
                    behavior=behavior,
                    attempts=1,
                    successes=1 if succeeded else 0,
                    failures=0 if succeeded else 1,
                )
            )
        return tuple(out)

    def observe(self, system: LearningSystem, behavior: str, outcome: LearningOutcome) -> LearningSystem:
        patterns = self._tally(system.patterns, behavior, outcome)
        pattern = next(item for item in patterns if item.behavior == behavior)

        hints = system.hints
        has_hint = any(hint.behavior == behavior for hint in hints)
        if pattern.failures >= self.hint_after_failures and not has_hint:
            hints = (
                *hints,
                AdaptiveHint(
                    behavior=behavior,
                    message=f"'{behavior}' keeps failing; try a different approach or ask an ally for help.",
                ),
            )

        gaps = tuple(gap for gap in system.skill_gaps if gap.behavior != behavior)
        share = pattern.failures / pattern.attempts if pattern.attempts else 0.0
        if pattern.attempts >= self.gap_min_samples and share >= self.gap_failure_share:
            gaps = (*gaps, SkillGap(behavior=behavior, failure_share=share, samples=pattern.attempts))

        return LearningSystem(patterns=patterns, hints=hints, skill_gaps=gaps)


def update_learning_system(
    arc: Arc,
    behavior: str,
    outcome: LearningOutcome,
    strategy: LearningStrategy,
) -> Arc:
    system = strategy.observe(arc.failure_recovery.learning_system, behavior, outcome)
    if system is arc.failure_recovery.learning_system:
        return arc
    return evolve(arc, failure_recovery=evolve(arc.failure_recovery, learning_system=system))
