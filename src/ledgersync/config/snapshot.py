"""Snapshot input location helpers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env_var

DEFAULT_CUSTOMER_PATTERNS: Final[tuple[str, ...]] = (
    "*customers*.xls",
    "*customers*.xlsx",
    "*customers*.csv",
)
DEFAULT_CANCELLATION_PATTERNS: Final[tuple[str, ...]] = (
    "*cancel*.xls",
    "*cancel*.xlsx",
    "*cancel*.csv",
)


@dataclass(frozen=True, slots=True)
class SnapshotConfig:
    directory: Path
    customer_patterns: tuple[str, ...] = DEFAULT_CUSTOMER_PATTERNS
    cancellation_patterns: tuple[str, ...] = DEFAULT_CANCELLATION_PATTERNS

    def resolve_directory(self) -> Path:
        return self.directory.expanduser().resolve()


def get_snapshot_config(*, directory: Path | None = None) -> SnapshotConfig:
    if directory is None:
        env_dir = optional_env_var("LEDGERSYNC_SNAPSHOT_DIR")
        directory = Path(env_dir) if env_dir else Path.cwd()
    return SnapshotConfig(directory=directory)
