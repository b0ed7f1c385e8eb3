"""Pydantic models for the CRM function-execution call."""

from __future__ import annotations

from pydantic import BaseModel


class FunctionArguments(BaseModel):
    is_paid: bool
    org_id: str


class FunctionRequest(BaseModel):
    arguments: FunctionArguments
