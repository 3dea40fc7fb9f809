import logging.config

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from storyarc.modules.arc.schemas import FailureThreshold

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _default_failure_thresholds() -> list[FailureThreshold]:
    return [
        FailureThreshold(metric="objective_failures", threshold=0.6, severity="warning", action="warn_player"),
        FailureThreshold(metric="time_exceeded", threshold=0.75, severity="concern", action="offer_help"),
        FailureThreshold(metric="resource_depletion", threshold=0.7, severity="concern", action="offer_help"),
        FailureThreshold(metric="relationship_breakdown", threshold=0.5, severity="concern", action="offer_help"),
        FailureThreshold(metric="player_frustration", threshold=0.6, severity="critical", action="intervene"),
    ]


class Settings(BaseSettings):
    log_level: str = "INFO"

    difficulty_default: float = 5.0
    difficulty_min: float = 1.0
    difficulty_max: float = 10.0
    difficulty_adjustment_step: float = 0.5
    difficulty_performance_weight: float = 0.3

    failure_thresholds: list[FailureThreshold] = Field(default_factory=_default_failure_thresholds)
    warning_ratio: float = 0.8
    long_term_mismatch_trigger: float = 0.3

    frustration_window: int = 10
    frustration_repeat_cap: int = 5
    frustration_prefix_chars: int = 10
    currency_reference: int = 100

    support_raise_below: float = 0.3
    support_lower_above: float = 0.8

    completion_base_experience: int = 500
    completion_experience_per_difficulty: int = 100
    completion_agency_bonus_threshold: float = 70.0
    completion_agency_skill_points: int = 2
    completion_efficient_duration: int = 15
    completion_efficiency_currency: int = 200

    choice_history_limit: int = 200
    state_history_limit: int = 50
    combat_consequence_limit: int = 50

    model_config = SettingsConfigDict(env_file=".env", env_prefix="STORYARC_", extra="ignore")


def configure_logging(level: str | None = None) -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "storyarc": {
                    "handlers": ["console"],
                    "level": (level or settings.log_level).upper(),
                    "propagate": False,
                },
            },
        }
    )


settings = Settings()
