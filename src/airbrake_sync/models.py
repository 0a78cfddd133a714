from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from .errors import MalformedResponseError
from .xmlparse import parse_datetime


def as_list(value: Any) -> list[Any]:
    """XML collapses a one-element collection to the element itself."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _expect_mapping(value: Any, *, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise MalformedResponseError(f"{where} must be an element with children")
    return value


def _expect_int(value: Any, *, where: str) -> int:
    if isinstance(value, bool):
        raise MalformedResponseError(f"{where} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise MalformedResponseError(f"{where} must be an integer")


def _expect_optional_int(value: Any, *, where: str) -> int | None:
    if value is None:
        return None
    return _expect_int(value, where=where)


def _expect_optional_str(value: Any, *, where: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedResponseError(f"{where} must be text")
    return value


def _expect_optional_datetime(value: Any, *, where: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return parse_datetime(value)
        except ValueError:
            pass
    raise MalformedResponseError(f"{where} must be a datetime")


def _optional_bool(value: Any) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True, slots=True)
class Project:
    id: int
    name: str | None = None

    @classmethod
    def from_xml(cls, raw: Any, *, where: str = "project") -> Project:
        obj = _expect_mapping(raw, where=where)
        return cls(
            id=_expect_int(obj.get("id"), where=f"{where}.id"),
            name=_expect_optional_str(obj.get("name"), where=f"{where}.name"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True, slots=True)
class Deploy:
    id: int
    project_id: int | None = None
    rails_env: str | None = None
    scm_revision: str | None = None
    scm_repository: str | None = None
    local_username: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_xml(cls, raw: Any, *, where: str = "deploy") -> Deploy:
        obj = _expect_mapping(raw, where=where)
        return cls(
            id=_expect_int(obj.get("id"), where=f"{where}.id"),
            project_id=_expect_optional_int(
                obj.get("project_id"), where=f"{where}.project_id"
            ),
            rails_env=_expect_optional_str(
                obj.get("rails_env"), where=f"{where}.rails_env"
            ),
            scm_revision=_expect_optional_str(
                obj.get("scm_revision"), where=f"{where}.scm_revision"
            ),
            scm_repository=_expect_optional_str(
                obj.get("scm_repository"), where=f"{where}.scm_repository"
            ),
            local_username=_expect_optional_str(
                obj.get("local_username"), where=f"{where}.local_username"
            ),
            created_at=_expect_optional_datetime(
                obj.get("created_at"), where=f"{where}.created_at"
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "rails_env": self.rails_env,
            "scm_revision": self.scm_revision,
            "scm_repository": self.scm_repository,
            "local_username": self.local_username,
            "created_at": _iso(self.created_at),
        }


@dataclass(frozen=True, slots=True)
class ErrorGroup:
    id: int
    project_id: int | None = None
    error_class: str | None = None
    error_message: str | None = None
    most_recent_notice_at: datetime | None = None
    notices_count: int | None = None
    resolved: bool | None = None

    @classmethod
    def from_xml(cls, raw: Any, *, where: str = "group") -> ErrorGroup:
        obj = _expect_mapping(raw, where=where)
        return cls(
            id=_expect_int(obj.get("id"), where=f"{where}.id"),
            project_id=_expect_optional_int(
                obj.get("project_id"), where=f"{where}.project_id"
            ),
            error_class=_expect_optional_str(
                obj.get("error_class"), where=f"{where}.error_class"
            ),
            error_message=_expect_optional_str(
                obj.get("error_message"), where=f"{where}.error_message"
            ),
            most_recent_notice_at=_expect_optional_datetime(
                obj.get("most_recent_notice_at"),
                where=f"{where}.most_recent_notice_at",
            ),
            notices_count=_expect_optional_int(
                obj.get("notices_count"), where=f"{where}.notices_count"
            ),
            resolved=_optional_bool(obj.get("resolved")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "error_class": self.error_class,
            "error_message": self.error_message,
            "most_recent_notice_at": _iso(self.most_recent_notice_at),
            "notices_count": self.notices_count,
            "resolved": self.resolved,
        }


@dataclass(frozen=True, slots=True)
class NoticeStub:
    id: int
    created_at: datetime | None = None

    @classmethod
    def from_xml(cls, raw: Any, *, where: str = "notice") -> NoticeStub:
        obj = _expect_mapping(raw, where=where)
        return cls(
            id=_expect_int(obj.get("id"), where=f"{where}.id"),
            created_at=_expect_optional_datetime(
                obj.get("created_at"), where=f"{where}.created_at"
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "created_at": _iso(self.created_at)}


_NOTICE_FIELDS = frozenset(
    {
        "id",
        "created_at",
        "project_id",
        "error_message",
        "backtrace",
        "request",
        "environment",
        "session",
    }
)


def _backtrace_lines(value: Any) -> tuple[str, ...]:
    # <backtrace><line>..</line><line>..</line></backtrace> or a typed array.
    if isinstance(value, Mapping):
        value = value.get("line")
    return tuple(str(line) for line in as_list(value) if line is not None)


def _optional_section(value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    if isinstance(value, Mapping):
        return dict(value)
    return {"value": value}


@dataclass(frozen=True, slots=True)
class Notice:
    """
    Full detail for one occurrence of an error.

    `error_id`, `error_project_id`, `project_name` and `error_class` are not part
    of the server record; they stay None until `sync.stamp_notice` joins the
    notice with its error group and project.
    """

    id: int
    created_at: datetime | None = None
    project_id: int | None = None
    error_message: str | None = None
    backtrace: tuple[str, ...] = ()
    request: dict[str, Any] | None = None
    environment: dict[str, Any] | None = None
    session: dict[str, Any] | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    error_id: int | None = None
    error_project_id: int | None = None
    project_name: str | None = None
    error_class: str | None = None

    @classmethod
    def from_xml(cls, raw: Any, *, where: str = "notice") -> Notice:
        obj = _expect_mapping(raw, where=where)
        return cls(
            id=_expect_int(obj.get("id"), where=f"{where}.id"),
            created_at=_expect_optional_datetime(
                obj.get("created_at"), where=f"{where}.created_at"
            ),
            project_id=_expect_optional_int(
                obj.get("project_id"), where=f"{where}.project_id"
            ),
            error_message=_expect_optional_str(
                obj.get("error_message"), where=f"{where}.error_message"
            ),
            backtrace=_backtrace_lines(obj.get("backtrace")),
            request=_optional_section(obj.get("request")),
            environment=_optional_section(obj.get("environment")),
            session=_optional_section(obj.get("session")),
            attributes={k: v for k, v in obj.items() if k not in _NOTICE_FIELDS},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "created_at": _iso(self.created_at),
            "project_id": self.project_id,
            "error_message": self.error_message,
            "backtrace": list(self.backtrace),
        }
        if self.request is not None:
            out["request"] = self.request
        if self.environment is not None:
            out["environment"] = self.environment
        if self.session is not None:
            out["session"] = self.session
        if self.attributes:
            out["attributes"] = {
                k: v.isoformat() if isinstance(v, datetime) else v
                for k, v in self.attributes.items()
            }
        if self.error_id is not None:
            out["error_id"] = self.error_id
        if self.error_project_id is not None:
            out["error_project_id"] = self.error_project_id
        if self.project_name is not None:
            out["project_name"] = self.project_name
        if self.error_class is not None:
            out["error_class"] = self.error_class
        return out
