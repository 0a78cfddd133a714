from __future__ import annotations

import logging
from typing import Any, Mapping

import requests

from .config import ClientConfig
from .errors import MalformedResponseError, MissingCredentialError, ServerError
from .models import as_list
from .paths import account_url
from .xmlparse import parse_xml, scrub_xml

logger = logging.getLogger(__name__)

_QUERY_METHODS = frozenset({"GET", "DELETE"})
_BODY_METHODS = frozenset({"POST", "PUT"})


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def form_fields(params: Mapping[str, Any], prefix: str | None = None) -> list[tuple[str, str]]:
    """Flatten nested params the way Rails reads them (`group[resolved]=true`)."""
    fields: list[tuple[str, str]] = []
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, Mapping):
            fields.extend(form_fields(value, name))
        elif isinstance(value, (list, tuple)):
            fields.extend((f"{name}[]", _form_value(v)) for v in value if v is not None)
        else:
            fields.append((name, _form_value(value)))
    return fields


def _error_messages(payload: Mapping[str, Any]) -> list[str]:
    errors = payload.get("errors")
    if isinstance(errors, Mapping):
        errors = errors.get("error")
    return [str(e) for e in as_list(errors) if e]


class Transport:
    """
    Issues one request against the account's API host and returns the parsed body.

    Response handling mirrors the usual middleware chain: 5xx statuses raise first,
    then the body is scrubbed and parsed, then any remaining >= 400 status raises
    with the server's `<errors>` messages. An `<errors>` body under a 2xx status
    raises the same way. No retries happen here.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._session = session if session is not None else requests.Session()
        self._headers = {
            "Accept": "application/xml",
            "User-Agent": config.user_agent,
        }

    @property
    def base_url(self) -> str:
        return account_url(self._config.account, secure=self._config.secure)

    def _check_credentials(self) -> None:
        if not self._config.auth_token:
            raise MissingCredentialError("API token cannot be empty")
        if not self._config.account:
            raise MissingCredentialError("Account cannot be empty")

    def request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        self._check_credentials()

        verb = method.upper()
        params = {k: v for k, v in (params or {}).items() if v is not None}
        url = f"{self.base_url}{path}"

        if verb in _QUERY_METHODS:
            query: Any = form_fields(params) + [("auth_token", self._config.auth_token)]
            body = None
        elif verb in _BODY_METHODS:
            query = [("auth_token", self._config.auth_token)]
            body = form_fields(params) or None
        else:
            raise ValueError(f"Unsupported HTTP method: {method}")

        logger.debug("%s %s", verb, url)
        try:
            response = self._session.request(
                verb,
                url,
                params=query,
                data=body,
                headers=self._headers,
                verify=self._config.verify_ssl,
                timeout=self._config.timeout_sec,
            )
        except requests.RequestException as error:
            raise ServerError(
                f"Airbrake request failed: {type(error).__name__}", status=0, url=url
            ) from None

        status = int(response.status_code)
        if status >= 500:
            raise ServerError(f"Airbrake server error ({status})", status=status, url=url)

        text = scrub_xml(response.content)

        if status >= 400:
            try:
                messages = _error_messages(parse_xml(text, url=url))
            except MalformedResponseError:
                messages = []
            message = "; ".join(messages) or f"Airbrake request failed ({status})"
            raise ServerError(message, status=status, url=url)

        payload = parse_xml(text, url=url)
        if "errors" in payload:
            message = "; ".join(_error_messages(payload)) or "Airbrake returned errors"
            raise ServerError(message, status=status, url=url)
        return payload
