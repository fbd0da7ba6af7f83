"""Environment-driven settings shared by the desktop app, API and CLI."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple

DEFAULT_DB_PATH = Path("data") / "expenses.db"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    db_path: Path = DEFAULT_DB_PATH
    strict_categories: bool = False
    log_level: str = "INFO"
    env: str = "prod"
    allowed_origins: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_dev(self) -> bool:
        return self.env in {"dev", "development"}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from ``EXPENSE_RECORDER_*`` environment variables."""
    env = os.environ if environ is None else environ
    origins = env.get("EXPENSE_RECORDER_ALLOWED_ORIGINS", "")
    return Settings(
        db_path=Path(env.get("EXPENSE_RECORDER_DB") or DEFAULT_DB_PATH),
        strict_categories=env.get("EXPENSE_RECORDER_STRICT_CATEGORIES", "").strip().lower() in _TRUTHY,
        log_level=(env.get("EXPENSE_RECORDER_LOG_LEVEL") or "INFO").strip().upper(),
        env=(env.get("EXPENSE_RECORDER_ENV") or "prod").strip().lower(),
        allowed_origins=tuple(origin.strip() for origin in origins.split(",") if origin.strip()),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
