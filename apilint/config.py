"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

DEFAULT_INDEX_KEY = "apilint.rules"
DEFAULT_TIMEOUT_S = 10.0


@dataclass(frozen=True)
class Settings:
    home: Path
    index_key: str = DEFAULT_INDEX_KEY
    base_url: str = ""
    timeout_s: float = DEFAULT_TIMEOUT_S

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """
        Build settings from APILINT_* environment variables.

        APILINT_HOME        storage directory (default ~/.apilint)
        APILINT_INDEX_KEY   key of the persisted rule index
        APILINT_BASE_URL    base for relative `rules/...` fetches
        APILINT_TIMEOUT     HTTP timeout in seconds
        """
        env = os.environ if environ is None else environ

        home_raw = env.get("APILINT_HOME", "").strip()
        home = Path(home_raw).expanduser() if home_raw else Path.home() / ".apilint"

        index_key = env.get("APILINT_INDEX_KEY", "").strip() or DEFAULT_INDEX_KEY
        base_url = env.get("APILINT_BASE_URL", "").strip()

        timeout_raw = env.get("APILINT_TIMEOUT", "").strip()
        try:
            timeout_s = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_S
        except ValueError:
            raise ValueError(f"APILINT_TIMEOUT must be a number, got {timeout_raw!r}") from None
        if timeout_s <= 0:
            raise ValueError("APILINT_TIMEOUT must be positive")

        return cls(home=home, index_key=index_key, base_url=base_url, timeout_s=timeout_s)

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with the non-None overrides applied (CLI options win over env)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @property
    def storage_dir(self) -> Path:
        return self.home / "storage"
