"""Best-effort publisher of paid/unpaid flags to the CRM."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from ledgersync.adapters.http_resilience import ResilientClient

from .schema import FunctionArguments, FunctionRequest

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from ledgersync.config.crm import CrmConfig
    from ledgersync.config.http_resilience import ResilienceConfig

log = getLogger(__name__)


class CrmStatusPublisher:
    """Calls the CRM function-execution endpoint with ``is_paid`` and ``org_id``.

    Retries live in the transport layer (see ``CrmConfig.resilience``). Whatever
    still fails afterwards is logged and dropped: the CRM flag is informational
    and must not hold up billing reconciliation.
    """

    def __init__(
        self,
        *,
        config: CrmConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> CrmStatusPublisher:
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

    async def publish(self, *, customer_id: str, is_paid: bool) -> bool:
        if self._client is None:
            raise RuntimeError("CrmStatusPublisher must be used as an async context manager")
        body = FunctionRequest(arguments=FunctionArguments(is_paid=is_paid, org_id=customer_id))
        params = {"auth_type": "apikey", "zapikey": self._config.api_key}
        try:
            response = await self._client.post(
                self._config.function_url,
                params=params,
                json=body.model_dump(mode="json"),
            )
        except httpx.HTTPError as exc:
            log.warning("Dropping CRM status for %s (is_paid=%s): %s", customer_id, is_paid, exc)
            return False
        if not response.is_success:
            log.warning(
                "Dropping CRM status for %s (is_paid=%s): HTTP %s %s",
                customer_id,
                is_paid,
                response.status_code,
                response.text[:200],
            )
            return False
        log.debug("Published CRM status for %s: is_paid=%s", customer_id, is_paid)
        return True


class NullStatusPublisher:
    """Publisher used when CRM updates are switched off."""

    async def publish(self, *, customer_id: str, is_paid: bool) -> bool:
        log.info("CRM publishing disabled; skipping %s (is_paid=%s)", customer_id, is_paid)
        return True
