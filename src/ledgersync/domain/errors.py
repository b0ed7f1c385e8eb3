"""Errors raised across the port boundary by remote collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class RemoteCallError(RuntimeError):
    """A remote call answered with an error response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        errors: Sequence[str] = (),
        payload: object = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errors = tuple(errors)
        self.payload = payload

    @property
    def first_error(self) -> str | None:
        return self.errors[0] if self.errors else None


class RemoteUnavailableError(RemoteCallError):
    """The remote could not be reached or did not answer in time."""


class SnapshotError(ValueError):
    """Raised when the snapshot input cannot be turned into records."""
