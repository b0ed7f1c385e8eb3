"""Public interface for the CRM status adapter."""

from __future__ import annotations

from .client import CrmStatusPublisher, NullStatusPublisher
from .schema import FunctionArguments, FunctionRequest

__all__ = [
    "CrmStatusPublisher",
    "FunctionArguments",
    "FunctionRequest",
    "NullStatusPublisher",
]
