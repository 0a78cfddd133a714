from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Sequence

import requests

from . import paths
from .config import ClientConfig
from .enrich import fetch_details
from .errors import MalformedResponseError
from .models import Deploy, ErrorGroup, Notice, NoticeStub, Project, as_list
from .paging import collect_window, walk_pages
from .sync import assemble_notices
from .transport import Transport
from .xmlparse import as_utc

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _section(payload: Mapping[str, Any], *keys: str) -> Any:
    """The root section named by the first of `keys` present (`group` vs `groups`)."""
    for key in keys:
        if key in payload:
            return payload[key]
    # Rails renders an empty array as <nil-classes type="array"/>.
    if len(payload) == 1 and next(iter(payload.values())) == []:
        return []
    found = ", ".join(f"<{key}>" for key in payload) or "an empty body"
    expected = " or ".join(f"<{key}>" for key in keys)
    raise MalformedResponseError(f"expected {expected} in response, got {found}")


def _records(section: Any, tag: str) -> list[Any]:
    """Collection members, whether wrapped in `<tag>` children or a typed array."""
    if isinstance(section, Mapping) and tag in section:
        section = section[tag]
    return as_list(section)


def _as_window(since: datetime, to: datetime | None) -> tuple[datetime, datetime]:
    return as_utc(since), (as_utc(to) if to is not None else _utcnow())


def _chunks(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class AirbrakeClient:
    """
    Read side of the Airbrake data API, plus windowed sync helpers.

    Windowed reads (`errors_since`, `notices_since`, `sync_all`) rely on the
    API returning every collection newest first; see `paging`.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: requests.Session | None = None,
        transport: Transport | None = None,
    ) -> None:
        self.config = config
        self._transport = (
            transport if transport is not None else Transport(config, session=session)
        )

    def request(
        self, method: str, path: str, params: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        return self._transport.request(method, path, params)

    def web_url_for(self, resource: str, *args: Any, **kwargs: Any) -> str:
        return paths.web_url_for(
            self.config.account, resource, *args, secure=self.config.secure, **kwargs
        )

    # projects

    def projects(self) -> list[Project]:
        payload = self.request("GET", paths.projects_path())
        raw = _records(_section(payload, "projects"), "project")
        return [Project.from_xml(p) for p in raw]

    list_projects = projects

    # deploys

    def deploys(self, project_id: int) -> list[Deploy]:
        payload = self.request("GET", paths.deploys_path(project_id))
        raw = _records(_section(payload, "projects", "deploys"), "deploy")
        return [Deploy.from_xml(d) for d in raw]

    # errors

    def error(self, error_id: int) -> ErrorGroup:
        payload = self.request("GET", paths.error_path(error_id))
        raw = _section(payload, "group", "groups")
        if isinstance(raw, Mapping) and "id" in raw:
            return ErrorGroup.from_xml(raw)
        groups = _records(raw, "group")
        if not groups:
            raise MalformedResponseError(f"no error group in response for id {error_id}")
        return ErrorGroup.from_xml(groups[0])

    def errors(
        self, *, page: int | None = None, project_id: int | None = None
    ) -> list[ErrorGroup]:
        payload = self.request(
            "GET", paths.errors_path(project_id), {"page": page}
        )
        raw = _records(_section(payload, "group", "groups"), "group")
        return [ErrorGroup.from_xml(g) for g in raw]

    def update_error(
        self, error_id: int, params: Mapping[str, Any] | None = None
    ) -> ErrorGroup:
        payload = self.request("PUT", paths.unformatted_error_path(error_id), params)
        return ErrorGroup.from_xml(_section(payload, "group"))

    def errors_since(
        self,
        since: datetime,
        to: datetime | None = None,
        *,
        project_id: int | None = None,
    ) -> list[ErrorGroup]:
        since, to = _as_window(since, to)
        found = collect_window(
            lambda page: self.errors(page=page, project_id=project_id),
            lambda e: e.most_recent_notice_at,
            since=since,
            to=to,
            per_page=self.config.per_page,
            max_pages=self.config.max_pages,
        )
        logger.debug("%d error group(s) in (%s, %s]", len(found), since, to)
        return found

    list_errors = errors_since

    # notices

    def notice(self, notice_id: int, error_id: int) -> Notice:
        payload = self.request("GET", paths.notice_path(notice_id, error_id))
        return Notice.from_xml(_section(payload, "notice"))

    def notice_stubs(self, error_id: int, *, page: int = 1) -> list[NoticeStub]:
        payload = self.request("GET", paths.notices_path(error_id), {"page": page})
        raw = _records(_section(payload, "notices"), "notice")
        return [NoticeStub.from_xml(n) for n in raw]

    def notice_details(
        self, error_id: int, stubs: Sequence[NoticeStub]
    ) -> list[Notice]:
        return fetch_details(
            stubs,
            lambda stub: self.notice(stub.id, error_id),
            workers=self.config.parallel_workers,
        )

    def notices(
        self,
        error_id: int,
        *,
        page: int | None = None,
        pages: int | None = None,
        raw: bool = False,
        on_batch: Callable[[list[Any]], None] | None = None,
    ) -> list[Notice] | list[NoticeStub]:
        """
        Notices for one error group, page by page.

        An explicit `page` returns just that page. Otherwise pages are read from
        1 until a short page (or `pages` pages). Each page's stubs are expanded
        to full notices unless `raw` is set. `on_batch` sees every page.
        """
        if page is not None:
            start, pages = page, 1
        else:
            start = 1

        out: list[Any] = []
        for stubs in walk_pages(
            lambda p: self.notice_stubs(error_id, page=p),
            per_page=self.config.per_page,
            start_page=start,
            pages=pages,
        ):
            batch: list[Any] = stubs if raw else self.notice_details(error_id, stubs)
            if on_batch is not None:
                on_batch(batch)
            out.extend(batch)
        return out

    def notices_since(
        self, error_id: int, since: datetime, to: datetime | None = None
    ) -> list[NoticeStub]:
        since, to = _as_window(since, to)
        return collect_window(
            lambda page: self.notice_stubs(error_id, page=page),
            lambda n: n.created_at,
            since=since,
            to=to,
            per_page=self.config.per_page,
            max_pages=self.config.max_pages,
        )

    def list_notices(
        self, error_id: int, since: datetime, to: datetime | None = None
    ) -> list[Notice]:
        """In-window notices with full detail; only in-window stubs are expanded."""
        stubs = self.notices_since(error_id, since, to)
        notices: list[Notice] = []
        for chunk in _chunks(stubs, self.config.per_page):
            notices.extend(self.notice_details(error_id, chunk))
        return notices

    # sync

    def sync_all(self, since: datetime, to: datetime | None = None) -> list[Notice]:
        return assemble_notices(self, *_as_window(since, to))
