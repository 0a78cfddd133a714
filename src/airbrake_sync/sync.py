from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Mapping

from .models import ErrorGroup, Notice, Project

if TYPE_CHECKING:
    from .client import AirbrakeClient

logger = logging.getLogger(__name__)


def build_project_lookup(projects: Iterable[Project]) -> dict[int, Project]:
    return {p.id: p for p in projects}


def stamp_notice(
    notice: Notice, error: ErrorGroup, projects_by_id: Mapping[int, Project]
) -> Notice:
    """
    Copy of `notice` joined with its error group and project.

    The project is looked up by the notice's own project id first, then by the
    error group's. An unresolved project leaves `project_name` unset.
    """
    project = None
    if notice.project_id is not None:
        project = projects_by_id.get(notice.project_id)
    if project is None and error.project_id is not None:
        project = projects_by_id.get(error.project_id)

    return dataclasses.replace(
        notice,
        error_id=error.id,
        error_project_id=error.project_id,
        error_class=error.error_class,
        project_name=project.name if project is not None else None,
    )


def assemble_notices(
    client: AirbrakeClient, since: datetime, to: datetime
) -> list[Notice]:
    """
    Every notice in `(since, to]` across all error groups, joined with its group
    and project.

    Output order follows the error groups as listed, then each group's notices as
    listed. Any failed request aborts the whole run.
    """
    projects_by_id = build_project_lookup(client.projects())
    errors = client.errors_since(since, to)

    out: list[Notice] = []
    for error in errors:
        notices = client.list_notices(error.id, since, to)
        out.extend(stamp_notice(n, error, projects_by_id) for n in notices)

    logger.info(
        "Synced %d notice(s) from %d error group(s) in (%s, %s]",
        len(out),
        len(errors),
        since.isoformat(),
        to.isoformat(),
    )
    return out
