"""Application configuration helpers."""

from __future__ import annotations

from .billing import BillingConfig, get_billing_config
from .crm import CrmConfig, get_crm_config
from .env import require_env_vars
from .errors import ConfigurationError, InvalidConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .snapshot import SnapshotConfig, get_snapshot_config
from .sync import DEFAULT_SYNC_PLANS, SyncConfig, get_sync_config

__all__ = [
    "DEFAULT_SYNC_PLANS",
    "BillingConfig",
    "ConfigurationError",
    "CrmConfig",
    "InvalidConfigurationError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SnapshotConfig",
    "SyncConfig",
    "configure_logging",
    "get_billing_config",
    "get_crm_config",
    "get_snapshot_config",
    "get_sync_config",
    "require_env_vars",
]
