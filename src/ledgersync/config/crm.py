"""CRM status publisher configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import ResilienceConfig, RetryPolicy

CRM_TIMEOUT_SECONDS = 30.0
CRM_PUBLISH_RETRIES = 4


@dataclass(frozen=True, slots=True)
class CrmConfig:
    """Holds the CRM function-execution endpoint and its credentials."""

    function_url: str
    api_key: str
    resilience: ResilienceConfig


def get_crm_config(*, resilience: ResilienceConfig | None = None) -> CrmConfig:
    values = require_env_vars(("CRM_FUNCTION_URL", "CRM_API_KEY"))
    return CrmConfig(
        function_url=values["CRM_FUNCTION_URL"],
        api_key=values["CRM_API_KEY"],
        resilience=resilience
        or ResilienceConfig(
            name="crm",
            timeout_seconds=CRM_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=CRM_PUBLISH_RETRIES, backoff_factor=1.0),
        ),
    )
