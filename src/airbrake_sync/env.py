from __future__ import annotations

import os
from pathlib import Path
from typing import MutableMapping


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def load_dotenv(
    *,
    path: str | Path = ".env",
    override: bool = False,
    environ: MutableMapping[str, str] | None = None,
) -> bool:
    """
    Copy `KEY=value` lines from a local .env file into the environment.

    Meant for local runs of the CLI (keep AIRBRAKE_AUTH_TOKEN out of git).
    Values are never echoed. Returns False when the file does not exist.
    """
    target = os.environ if environ is None else environ
    env_path = Path(path)
    if not env_path.is_file():
        return False

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        if key in target and not override:
            continue
        target[key] = _unquote(value.strip())

    return True
