"""Billing ledger API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

DEFAULT_BILLING_BASE_URL = "https://api.profitwell.com"
BILLING_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True, slots=True)
class BillingConfig:
    """Holds billing ledger API configuration values."""

    api_key: str
    resilience: ResilienceConfig


def get_billing_config(*, resilience: ResilienceConfig | None = None) -> BillingConfig:
    values = require_env_vars(("BILLING_API_KEY",))
    api_key = values["BILLING_API_KEY"]
    base_url = optional_env_var("BILLING_API_BASE_URL") or DEFAULT_BILLING_BASE_URL
    return BillingConfig(
        api_key=api_key,
        resilience=resilience
        or ResilienceConfig(
            name="billing",
            base_url=base_url,
            timeout_seconds=BILLING_TIMEOUT_SECONDS,
            # retries for ledger writes are classified per operation in the domain
            retry=None,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            default_headers={"Authorization": api_key},
        ),
    )
