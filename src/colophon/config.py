# ABOUTME: Runtime settings for the export engine, with COLOPHON_* environment overrides.
# ABOUTME: Holds worker pool sizes, boundary timeouts, and the job retention window.

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path

DEFAULT_DB_PATH = Path.home() / ".colophon" / "works.db"

ENV_PREFIX = "COLOPHON_"


@dataclass(frozen=True)
class ExportSettings:
    """Tunables for ExportScheduler.

    Timeouts apply only at the repository fetch and sink delivery boundaries;
    encoding is never timed out.
    """

    max_workers: int = 4
    max_concurrent_jobs: int = 2
    fetch_timeout: float = 30.0
    delivery_timeout: float = 60.0
    retention_seconds: float = 3600.0

    def __post_init__(self) -> None:
        if self.max_workers < 1 or self.max_concurrent_jobs < 1:
            raise ValueError("worker counts must be at least 1")
        if self.fetch_timeout <= 0 or self.delivery_timeout <= 0:
            raise ValueError("timeouts must be positive")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ExportSettings":
        """Build settings from COLOPHON_MAX_WORKERS, COLOPHON_FETCH_TIMEOUT, etc.

        Unset variables keep their defaults.

        Raises:
            ValueError: If a variable is set but not a valid number.
        """
        env = os.environ if environ is None else environ
        overrides = {}
        for item in fields(cls):
            raw = env.get(ENV_PREFIX + item.name.upper())
            if raw is None or raw == "":
                continue
            caster = int if item.type in (int, "int") else float
            try:
                overrides[item.name] = caster(raw)
            except ValueError as exc:
                raise ValueError(
                    f"{ENV_PREFIX}{item.name.upper()} must be a number, got {raw!r}"
                ) from exc
        return cls(**overrides)
