"""Environment-driven settings for running smartctl and the viewer."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class Settings:
    """Runtime settings loaded from environment variables."""

    smartctl_path: Optional[str]
    smartctl_args: List[str]
    timeout_sec: int
    log_level: str


def load_settings() -> Settings:
    """Load settings from environment variables with safe defaults."""

    return Settings(
        smartctl_path=os.getenv("SMARTPARSE_SMARTCTL") or None,
        smartctl_args=shlex.split(os.getenv("SMARTPARSE_SMARTCTL_ARGS", "-x")),
        timeout_sec=int(os.getenv("SMARTPARSE_TIMEOUT_SEC", "60")),
        log_level=os.getenv("SMARTPARSE_LOG_LEVEL", "WARNING").upper(),
    )
