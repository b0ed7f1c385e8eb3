"""Public interface for the billing ledger adapter."""

from __future__ import annotations

from .client import BillingAPIError, BillingLedgerClient, BillingUnavailableError
from .schema import ChurnParams, CreateSubscriptionPayload, ErrorResponse

__all__ = [
    "BillingAPIError",
    "BillingLedgerClient",
    "BillingUnavailableError",
    "ChurnParams",
    "CreateSubscriptionPayload",
    "ErrorResponse",
]
