"""Rails-flavoured XML payloads -> plain Python structures.

The API renders records the way ActiveRecord's `to_xml` does:

    <groups type="array">
      <group>
        <id type="integer">1</id>
        <error-class>RuntimeError</error-class>
        <most-recent-notice-at type="datetime">2012-03-01T12:00:00Z</most-recent-notice-at>
      </group>
    </groups>

`parse_xml` turns that into ``{"groups": [{"id": 1, "error_class": ..., ...}]}``.
Typed records are built from these mappings in `models`.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any
from xml.etree import ElementTree as ET

from .errors import MalformedResponseError

# Characters XML 1.0 does not allow anywhere in a document.
_ILLEGAL_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")

_TYPE_ATTR = "type"
_NIL_ATTR = "nil"


def scrub_xml(payload: str | bytes) -> str:
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    return _ILLEGAL_XML_CHARS.sub("", payload)


def parse_datetime(value: str) -> datetime:
    raw = value.strip()
    if raw.endswith(" UTC"):
        raw = raw[: -len(" UTC")].replace(" ", "T") + "+00:00"
    elif raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(raw))


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _key(tag: str) -> str:
    return tag.replace("-", "_")


def _cast(text: str | None, type_name: str | None) -> Any:
    if text is None:
        return None
    if type_name == "integer":
        return int(text.strip())
    if type_name in ("float", "decimal"):
        return float(text.strip())
    if type_name == "boolean":
        return text.strip().lower() in ("true", "1")
    if type_name in ("datetime", "date"):
        return parse_datetime(text)
    return text


def _convert(element: ET.Element) -> Any:
    if element.get(_NIL_ATTR) == "true":
        return None

    type_name = element.get(_TYPE_ATTR)
    children = list(element)

    if type_name == "array":
        return [_convert(child) for child in children]

    if not children:
        text = element.text
        if text is not None and not text.strip() and type_name is None:
            return None
        return _cast(text, type_name)

    out: dict[str, Any] = {
        _key(name): value
        for name, value in element.attrib.items()
        if name not in (_TYPE_ATTR, _NIL_ATTR)
    }
    repeated: set[str] = set()
    for child in children:
        key = _key(child.tag)
        value = _convert(child)
        if key in repeated:
            out[key].append(value)
        elif key in out:
            out[key] = [out[key], value]
            repeated.add(key)
        else:
            out[key] = value
    return out


def parse_xml(payload: str | bytes, *, url: str | None = None) -> dict[str, Any]:
    text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
    if not text.strip():
        return {}
    try:
        root = ET.fromstring(text)
        return {_key(root.tag): _convert(root)}
    except ET.ParseError as error:
        raise MalformedResponseError(f"Invalid XML payload: {error}", url=url) from None
    except ValueError as error:
        raise MalformedResponseError(f"Invalid typed value in payload: {error}", url=url) from None
