"""Request paths for the Airbrake XML API.

These strings are part of the wire protocol; keep them exact.
"""
from __future__ import annotations

from typing import Any, Callable

from .errors import InvalidResourceError

SERVICE_HOST = "airbrake.io"


def account_url(account: str | None, *, secure: bool = False) -> str:
    protocol = "https" if secure else "http"
    return f"{protocol}://{account}.{SERVICE_HOST}"


def deploys_path(project_id: Any) -> str:
    return f"/projects/{project_id}/deploys.xml"


def projects_path() -> str:
    return "/data_api/v1/projects.xml"


def errors_path(project_id: Any = None) -> str:
    prefix = f"/projects/{project_id}" if project_id else ""
    return f"{prefix}/groups.xml"


def unformatted_error_path(error_id: Any) -> str:
    return f"/groups/{error_id}"


def error_path(error_id: Any) -> str:
    return f"{unformatted_error_path(error_id)}.xml"


def notices_path(error_id: Any) -> str:
    return f"/groups/{error_id}/notices.xml"


def notice_path(notice_id: Any, error_id: Any) -> str:
    return f"/groups/{error_id}/notices/{notice_id}.xml"


_BUILDERS: dict[str, Callable[..., str]] = {
    "deploys": deploys_path,
    "projects": projects_path,
    "errors": errors_path,
    "error": error_path,
    "notices": notices_path,
    "notice": notice_path,
}


def path_for(resource: str, *args: Any, **kwargs: Any) -> str:
    builder = _BUILDERS.get(str(resource))
    if builder is None:
        raise InvalidResourceError(str(resource))
    return builder(*args, **kwargs)


def web_url_for(
    account: str | None, resource: str, *args: Any, secure: bool = False, **kwargs: Any
) -> str:
    """Browser URL for a resource: the API path without its `.xml` suffix."""
    if str(resource) == "projects":
        # The web UI lists projects at /projects, not at the data API path.
        path = "/projects"
    else:
        path = path_for(resource, *args, **kwargs)
    return account_url(account, secure=secure) + path.split(".", 1)[0]
