"""Reconciliation run defaults."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import env_float, env_int, optional_env_var
from .errors import ConfigurationError, InvalidConfigurationError

DEFAULT_SYNC_PLANS: frozenset[str] = frozenset(
    {
        "Advanced Round Robin Lead Assignment",
        "Notes Filter Extension",
        "Stale Lead Tracker",
        "Twilio SMS Extension for Zoho CRM",
    }
)
DEFAULT_TIME_UNIT_SECONDS = 0.5
DEFAULT_MAX_RETRIES = 4
DEFAULT_MAX_CONCURRENCY = 16
DEFAULT_PROGRESS_EVERY = 10


@dataclass(frozen=True, slots=True)
class SyncConfig:
    """Knobs of one reconciliation run.

    Delays are expressed in abstract time units; ``time_unit_seconds`` converts
    them to wall-clock seconds so tests can run the same schedule with a zero or
    one-second unit.
    """

    plans: frozenset[str] = field(default_factory=lambda: DEFAULT_SYNC_PLANS)
    time_unit_seconds: float = DEFAULT_TIME_UNIT_SECONDS
    pacing_units: float = 1.0
    create_backoff_units: float = 5.0
    churn_backoff_units: float = 15.0
    unchurn_backoff_units: float = 15.0
    max_retries: int = DEFAULT_MAX_RETRIES
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    progress_every: int = DEFAULT_PROGRESS_EVERY

    def __post_init__(self) -> None:
        if not self.plans:
            raise ConfigurationError("At least one plan must be configured for syncing")
        if self.time_unit_seconds < 0:
            raise InvalidConfigurationError(
                "time_unit_seconds", self.time_unit_seconds, "non-negative"
            )
        if self.max_retries < 0:
            raise InvalidConfigurationError("max_retries", self.max_retries, "non-negative")
        if self.max_concurrency <= 0:
            raise InvalidConfigurationError("max_concurrency", self.max_concurrency, "positive")
        if self.progress_every <= 0:
            raise InvalidConfigurationError("progress_every", self.progress_every, "positive")

    @property
    def pacing_delay(self) -> float:
        return self.pacing_units * self.time_unit_seconds


def _parse_plans(raw: str) -> frozenset[str]:
    return frozenset(name.strip() for name in raw.split(";") if name.strip())


def get_sync_config() -> SyncConfig:
    raw_plans = optional_env_var("LEDGERSYNC_PLANS")
    plans = _parse_plans(raw_plans) if raw_plans is not None else DEFAULT_SYNC_PLANS
    return SyncConfig(
        plans=plans,
        time_unit_seconds=env_float("LEDGERSYNC_TIME_UNIT_SECONDS", DEFAULT_TIME_UNIT_SECONDS),
        max_concurrency=env_int("LEDGERSYNC_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY),
    )
