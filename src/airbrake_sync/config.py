from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping

from .errors import ConfigurationError
from .version import __version__

DEFAULT_USER_AGENT = f"airbrake-sync/{__version__}"
DEFAULT_PAGE_SIZE = 20
DEFAULT_PARALLEL_WORKERS = 10
DEFAULT_TIMEOUT_SEC = 30.0


@dataclass(frozen=True, slots=True)
class ClientConfig:
    account: str | None = None
    auth_token: str | None = None
    secure: bool = False
    verify_ssl: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    per_page: int = DEFAULT_PAGE_SIZE
    parallel_workers: int = DEFAULT_PARALLEL_WORKERS
    # Upper bound on pages per windowed walk; None walks until the window ends.
    max_pages: int | None = None
    timeout_sec: float = DEFAULT_TIMEOUT_SEC

    def __post_init__(self) -> None:
        if self.per_page < 1:
            raise ConfigurationError("per_page must be >= 1")
        if self.parallel_workers < 1:
            raise ConfigurationError("parallel_workers must be >= 1")
        if self.max_pages is not None and self.max_pages < 1:
            raise ConfigurationError("max_pages must be >= 1 when set")

    def with_overrides(self, **changes: Any) -> ClientConfig:
        return replace(self, **changes)


def _parse_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    return raw not in {"0", "false", "False", "no", "NO", ""}


def _parse_int(name: str, raw: str | None, default: int | None) -> int | None:
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid env var: {name} (expected an integer)") from None


def _parse_float(name: str, raw: str | None, default: float) -> float:
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid env var: {name} (expected a number)") from None


def load_client_config(env: Mapping[str, str] | None = None) -> ClientConfig:
    """
    Build a `ClientConfig` from `AIRBRAKE_*` environment variables.

    Credentials may be absent here; the transport refuses to send a request
    without them, so a config can still be built for offline use (URLs, tests).
    """
    if env is None:
        env = os.environ

    return ClientConfig(
        account=env.get("AIRBRAKE_ACCOUNT") or None,
        auth_token=env.get("AIRBRAKE_AUTH_TOKEN") or None,
        secure=_parse_bool(env.get("AIRBRAKE_SECURE"), False),
        verify_ssl=_parse_bool(env.get("AIRBRAKE_VERIFY_SSL"), False),
        user_agent=env.get("AIRBRAKE_USER_AGENT") or DEFAULT_USER_AGENT,
        per_page=_parse_int(
            "AIRBRAKE_PER_PAGE", env.get("AIRBRAKE_PER_PAGE"), DEFAULT_PAGE_SIZE
        ),
        parallel_workers=_parse_int(
            "AIRBRAKE_PARALLEL_WORKERS",
            env.get("AIRBRAKE_PARALLEL_WORKERS"),
            DEFAULT_PARALLEL_WORKERS,
        ),
        max_pages=_parse_int("AIRBRAKE_MAX_PAGES", env.get("AIRBRAKE_MAX_PAGES"), None),
        timeout_sec=_parse_float(
            "AIRBRAKE_TIMEOUT_SEC", env.get("AIRBRAKE_TIMEOUT_SEC"), DEFAULT_TIMEOUT_SEC
        ),
    )
