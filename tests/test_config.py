from __future__ import annotations

from pathlib import Path

import pytest

from airbrake_sync.config import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_PARALLEL_WORKERS,
    ClientConfig,
    load_client_config,
)
from airbrake_sync.env import load_dotenv
from airbrake_sync.errors import ConfigurationError


def test_defaults_without_env() -> None:
    config = load_client_config({})
    assert config.account is None
    assert config.auth_token is None
    assert config.secure is False
    assert config.verify_ssl is False
    assert config.per_page == DEFAULT_PAGE_SIZE == 20
    assert config.parallel_workers == DEFAULT_PARALLEL_WORKERS == 10
    assert config.max_pages is None
    assert config.user_agent.startswith("airbrake-sync/")


def test_reads_airbrake_env_vars() -> None:
    config = load_client_config(
        {
            "AIRBRAKE_ACCOUNT": "acme",
            "AIRBRAKE_AUTH_TOKEN": "tok",
            "AIRBRAKE_SECURE": "1",
            "AIRBRAKE_VERIFY_SSL": "true",
            "AIRBRAKE_PER_PAGE": "50",
            "AIRBRAKE_PARALLEL_WORKERS": "4",
            "AIRBRAKE_MAX_PAGES": "100",
            "AIRBRAKE_TIMEOUT_SEC": "5.5",
        }
    )
    assert config == ClientConfig(
        account="acme",
        auth_token="tok",
        secure=True,
        verify_ssl=True,
        per_page=50,
        parallel_workers=4,
        max_pages=100,
        timeout_sec=5.5,
    )


def test_invalid_numbers_raise_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="AIRBRAKE_PER_PAGE"):
        load_client_config({"AIRBRAKE_PER_PAGE": "twenty"})
    with pytest.raises(ConfigurationError):
        load_client_config({"AIRBRAKE_PARALLEL_WORKERS": "0"})


def test_with_overrides_returns_copy() -> None:
    base = ClientConfig(account="acme", auth_token="tok")
    changed = base.with_overrides(per_page=5)
    assert changed.per_page == 5
    assert base.per_page == 20
    assert changed.account == "acme"


def test_load_dotenv_does_not_override_by_default(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# local creds\n"
        "export AIRBRAKE_ACCOUNT=acme\n"
        "AIRBRAKE_AUTH_TOKEN='secret'\n"
        "not a pair\n",
        encoding="utf-8",
    )
    environ = {"AIRBRAKE_ACCOUNT": "kept"}

    assert load_dotenv(path=env_file, environ=environ) is True
    assert environ == {"AIRBRAKE_ACCOUNT": "kept", "AIRBRAKE_AUTH_TOKEN": "secret"}

    assert load_dotenv(path=env_file, environ=environ, override=True) is True
    assert environ["AIRBRAKE_ACCOUNT"] == "acme"


def test_load_dotenv_missing_file(tmp_path: Path) -> None:
    assert load_dotenv(path=tmp_path / "absent.env", environ={}) is False
