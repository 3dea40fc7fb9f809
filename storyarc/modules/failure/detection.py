from __future__ import annotations

from storyarc.config import Settings, settings as default_settings
from storyarc.modules.arc.models import (
    DetectedFailure,
    DetectedWarning,
    FailureDetectionResult,
    FailureMetrics,
    FailureRecommendation,
)
from storyarc.modules.arc.schemas import Arc, FailureThreshold
from storyarc.modules.arc.snapshots import CharacterSnapshot, WorldStateSnapshot
from storyarc.modules.metrics.calculator import calculate_failure_metrics, metric_value

_FAILURE_DESCRIPTIONS = {
    "objective_failures": "Objective failure rate is {pct}%, indicating significant difficulty",
    "time_exceeded": "Time efficiency is {pct}%, suggesting pacing issues",
    "resource_depletion": "Resource depletion is at {pct}%, indicating resource management problems",
    "relationship_breakdown": "Relationship stress is at {pct}%, suggesting social difficulties",
    "player_frustration": "Frustration indicators are at {pct}%, suggesting player engagement issues",
    "difficulty_mismatch": "Difficulty mismatch is at {pct}%, suggesting the arc is poorly scaled",
}

_FAILURE_ACTIONS: dict[str, tuple[str, ...]] = {
    "objective_failures": (
        "Reduce objective difficulty",
        "Provide additional guidance",
        "Offer alternative solutions",
    ),
    "time_exceeded": (
        "Streamline objectives",
        "Provide time management hints",
        "Adjust pacing",
    ),
    "resource_depletion": (
        "Provide resource opportunities",
        "Reduce resource costs",
        "Offer resource management advice",
    ),
    "relationship_breakdown": (
        "Provide relationship repair opportunities",
        "Clarify relationship mechanics",
        "Offer social guidance",
    ),
    "player_frustration": (
        "Simplify current objectives",
        "Provide clearer direction",
        "Offer encouragement",
    ),
    "difficulty_mismatch": (
        "Rebalance encounter difficulty",
        "Review character progression pacing",
    ),
}
_FALLBACK_ACTIONS = ("Monitor situation", "Consider intervention")


def _percentage(value: float) -> int:
    return int(round(value * 100))


def describe_failure(metric: str, value: float) -> str:
    template = _FAILURE_DESCRIPTIONS.get(metric, "Metric {metric} is at {pct}%")
    return template.format(metric=metric, pct=_percentage(value))


def failure_actions(metric: str) -> tuple[str, ...]:
    return _FAILURE_ACTIONS.get(metric, _FALLBACK_ACTIONS)


def detect_failures(thresholds: tuple[FailureThreshold, ...], metrics: FailureMetrics) -> list[DetectedFailure]:
    failures: list[DetectedFailure] = []
    for threshold in thresholds:
        value = metric_value(threshold.metric, metrics)
        if value < threshold.threshold:
            continue
        failures.append(
            DetectedFailure(
                metric=threshold.metric,
                current_value=value,
                threshold=threshold.threshold,
                severity=threshold.severity,
                description=describe_failure(threshold.metric, value),
                suggested_actions=failure_actions(threshold.metric),
            )
        )
    return failures


def detect_warnings(
    thresholds: tuple[FailureThreshold, ...],
    metrics: FailureMetrics,
    *,
    warning_ratio: float,
) -> list[DetectedWarning]:
    warnings: list[DetectedWarning] = []
    for threshold in thresholds:
        value = metric_value(threshold.metric, metrics)
        if not (threshold.threshold * warning_ratio <= value < threshold.threshold):
            continue
        warnings.append(
            DetectedWarning(
                metric=threshold.metric,
                current_value=value,
                threshold=threshold.threshold,
                description=f"{threshold.metric} is at {_percentage(value)}% of critical threshold",
                preventive_actions=(f"Monitor {threshold.metric}", "Consider preventive measures"),
            )
        )
    return warnings


def build_recommendations(
    failures: list[DetectedFailure],
    warnings: list[DetectedWarning],
    metrics: FailureMetrics,
    *,
    mismatch_trigger: float,
) -> list[FailureRecommendation]:
    recommendations: list[FailureRecommendation] = []
    for failure in failures:
        recommendations.append(
            FailureRecommendation(
                kind="immediate",
                action=failure.suggested_actions[0] if failure.suggested_actions else "Address failure",
                description=f"Immediately address {failure.metric} failure",
                priority=9,
                estimated_effectiveness=80,
            )
        )
    for warning in warnings:
        recommendations.append(
            FailureRecommendation(
                kind="short_term",
                action=warning.preventive_actions[0],
                description=f"Prevent escalation of {warning.metric}",
                priority=6,
                estimated_effectiveness=60,
            )
        )
    if metrics.difficulty_mismatch > mismatch_trigger:
        recommendations.append(
            FailureRecommendation(
                kind="long_term",
                action="Adjust difficulty scaling",
                description="Improve difficulty adaptation for this character",
                priority=4,
                estimated_effectiveness=70,
            )
        )
    # sorted() is stable, so equal priorities keep discovery order.
    return sorted(recommendations, key=lambda item: -item.priority)


def detect_arc_failures(
    arc: Arc,
    character: CharacterSnapshot,
    world: WorldStateSnapshot,
    *,
    cfg: Settings | None = None,
    metrics: FailureMetrics | None = None,
) -> FailureDetectionResult:
    cfg = cfg or default_settings
    if metrics is None:
        metrics = calculate_failure_metrics(arc, character, world, cfg=cfg)
    thresholds = arc.failure_recovery.failure_thresholds
    failures = detect_failures(thresholds, metrics)
    warnings = detect_warnings(thresholds, metrics, warning_ratio=cfg.warning_ratio)
    recommendations = build_recommendations(
        failures,
        warnings,
        metrics,
        mismatch_trigger=cfg.long_term_mismatch_trigger,
    )
    return FailureDetectionResult(
        failures=tuple(failures),
        warnings=tuple(warnings),
        recommendations=tuple(recommendations),
        metrics=metrics,
    )
