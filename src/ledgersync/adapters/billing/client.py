"""HTTP client for the subscription billing ledger."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Unpack
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ledgersync.adapters.http_resilience import ResilientClient
from ledgersync.domain.errors import RemoteCallError, RemoteUnavailableError

from .schema import ChurnParams, CreateSubscriptionPayload, ErrorResponse

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from ledgersync.adapters.http_resilience import RequestOptions
    from ledgersync.config.billing import BillingConfig
    from ledgersync.config.http_resilience import ResilienceConfig
    from ledgersync.domain.model import ChurnType
    from ledgersync.domain.ports import SubscriptionRequest

log = getLogger(__name__)

SUBSCRIPTIONS_PATH = "/v2/subscriptions/"
UNCHURN_PATH = "/v2/unchurn/"


class BillingAPIError(RemoteCallError):
    """Raised when the billing ledger answers with a non-success status."""


class BillingUnavailableError(BillingAPIError, RemoteUnavailableError):
    """Raised when the billing ledger cannot be reached."""


def _alias_path(prefix: str, alias: str) -> str:
    return f"{prefix}{quote(alias, safe='')}/"


def _error_from_response(response: httpx.Response, *, operation: str) -> BillingAPIError:
    message = f"{operation} failed with HTTP {response.status_code}"
    try:
        payload = response.json()
    except ValueError:
        return BillingAPIError(message, status_code=response.status_code, payload=response.text)

    errors: list[str] = []
    if isinstance(payload, dict):
        try:
            errors = ErrorResponse.model_validate(payload).non_field_errors
        except ValidationError:
            log.debug("Unexpected billing error payload shape: %r", payload)
    return BillingAPIError(
        message, status_code=response.status_code, errors=errors, payload=payload
    )


class BillingLedgerClient:
    """Billing ledger port backed by the REST API.

    Use as an async context manager so concurrent customers share one
    connection pool and one rate limiter.
    """

    def __init__(
        self,
        *,
        config: BillingConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> BillingLedgerClient:
        self._client = self._client_factory(self._config.resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def create_subscription(self, request: SubscriptionRequest) -> None:
        payload = CreateSubscriptionPayload(
            user_alias=request.user_alias,
            subscription_alias=request.subscription_alias,
            email=request.email,
            plan_id=request.plan_id,
            plan_interval=request.plan_interval,
            value=request.value,
            plan_currency=request.plan_currency,
            effective_date=request.effective_date,
        )
        await self._send(
            "POST",
            SUBSCRIPTIONS_PATH,
            operation="create subscription",
            json=payload.model_dump(mode="json"),
        )

    async def churn_subscription(
        self,
        *,
        subscription_alias: str,
        effective_date: int,
        churn_type: ChurnType,
    ) -> None:
        params = ChurnParams(effective_date=effective_date, churn_type=churn_type)
        await self._send(
            "DELETE",
            _alias_path(SUBSCRIPTIONS_PATH, subscription_alias),
            operation="churn subscription",
            params=params.model_dump(mode="json"),
        )

    async def unchurn_subscription(self, *, subscription_alias: str) -> None:
        await self._send(
            "PUT",
            _alias_path(UNCHURN_PATH, subscription_alias),
            operation="unchurn subscription",
        )

    async def _send(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("BillingLedgerClient must be used as an async context manager")
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise BillingUnavailableError(f"{operation} request failed: {exc}") from exc
        if response.is_success:
            return response
        raise _error_from_response(response, operation=operation)
