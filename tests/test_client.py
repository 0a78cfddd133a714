from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from airbrake_sync.client import AirbrakeClient
from airbrake_sync.config import ClientConfig
from airbrake_sync.errors import AirbrakeError, MalformedResponseError, ServerError
from airbrake_sync.models import Notice, NoticeStub

from tests.helpers.fake_airbrake import FakeAirbrake, FakeResponse, StaticSession, groups_xml

NOW = datetime(2026, 10, 1, 12, tzinfo=timezone.utc)


def _hours_ago(hours: float) -> datetime:
    return NOW - timedelta(hours=hours)


def _client(fake: FakeAirbrake, **overrides) -> AirbrakeClient:  # noqa: ANN003
    config = ClientConfig(
        account="acme", auth_token="tok", per_page=fake.per_page, **overrides
    )
    return AirbrakeClient(config, session=fake)


def _groups(count: int) -> list[dict]:
    return [
        {
            "id": i,
            "project_id": 1,
            "error_class": f"Error{i}",
            "most_recent_notice_at": _hours_ago(i),
        }
        for i in range(1, count + 1)
    ]


def _notices(ids: range, *, start_hours: float = 1) -> list[dict]:
    return [
        {"id": n, "created_at": _hours_ago(start_hours + k), "backtrace": [f"app.rb:{n}"]}
        for k, n in enumerate(ids)
    ]


def test_list_errors_reads_one_page_when_window_ends_inside_it() -> None:
    fake = FakeAirbrake(groups=_groups(25), per_page=20)

    errors = _client(fake).list_errors(_hours_ago(18.5), NOW)

    assert [e.id for e in errors] == list(range(1, 19))
    assert fake.pages("/groups.xml") == [1]


def test_list_errors_defaults_window_end_to_now() -> None:
    future = {"id": 99, "project_id": 1, "error_class": "Late",
              "most_recent_notice_at": datetime.now(timezone.utc) + timedelta(days=1)}
    fake = FakeAirbrake(groups=[future] + _groups(3), per_page=20)

    errors = _client(fake).list_errors(_hours_ago(10))

    assert [e.id for e in errors] == [1, 2, 3]


def test_errors_for_project_use_project_path() -> None:
    fake = FakeAirbrake(per_page=20)
    with pytest.raises(ServerError) as excinfo:
        _client(fake).errors(page=1, project_id=5)
    assert excinfo.value.status == 404
    assert fake.paths() == ["/projects/5/groups.xml"]


def test_explicit_notice_page_fetches_only_that_page() -> None:
    fake = FakeAirbrake(notices={7: _notices(range(1, 70))}, per_page=20)

    stubs = _client(fake).notices(7, page=3, raw=True)

    assert [s.id for s in stubs] == list(range(41, 61))
    assert all(isinstance(s, NoticeStub) for s in stubs)
    assert fake.pages("/groups/7/notices.xml") == [3]


def test_notices_expand_each_page_in_order() -> None:
    fake = FakeAirbrake(notices={7: _notices(range(1, 6))}, per_page=2)
    batches: list[list] = []

    notices = _client(fake, parallel_workers=3).notices(7, on_batch=batches.append)

    assert [n.id for n in notices] == [1, 2, 3, 4, 5]
    assert all(isinstance(n, Notice) for n in notices)
    assert notices[0].backtrace == ("app.rb:1",)
    assert [len(b) for b in batches] == [2, 2, 1]
    assert fake.pages("/groups/7/notices.xml") == [1, 2, 3]


def test_notices_respect_pages_limit() -> None:
    fake = FakeAirbrake(notices={7: _notices(range(1, 11))}, per_page=2)
    stubs = _client(fake).notices(7, pages=2, raw=True)
    assert [s.id for s in stubs] == [1, 2, 3, 4]


def test_list_notices_only_expands_in_window_stubs() -> None:
    fake = FakeAirbrake(notices={7: _notices(range(1, 10))}, per_page=4)

    notices = _client(fake).list_notices(7, _hours_ago(5.5), NOW)

    assert [n.id for n in notices] == [1, 2, 3, 4, 5]
    detail_paths = [p for p in fake.paths() if p.startswith("/groups/7/notices/")]
    assert sorted(detail_paths) == [f"/groups/7/notices/{n}.xml" for n in range(1, 6)]
    assert fake.pages("/groups/7/notices.xml") == [1, 2]


def test_detail_failure_fails_list_notices() -> None:
    fake = FakeAirbrake(
        notices={7: _notices(range(1, 4))},
        per_page=20,
        fail_paths={"/groups/7/notices/2.xml"},
    )
    with pytest.raises(ServerError) as excinfo:
        _client(fake).list_notices(7, _hours_ago(10), NOW)
    assert excinfo.value.status == 500


def test_single_record_endpoints() -> None:
    fake = FakeAirbrake(
        projects=[{"id": 1, "name": "Shop"}],
        groups=_groups(2),
        notices={2: _notices(range(10, 11))},
    )
    client = _client(fake)

    assert [p.name for p in client.list_projects()] == ["Shop"]
    assert client.error(2).error_class == "Error2"
    assert client.notice(10, 2).id == 10
    assert client.update_error(1, {"group": {"resolved": True}}).id == 1
    assert fake.paths("PUT") == ["/groups/1"]


def test_web_url_for_uses_account() -> None:
    client = _client(FakeAirbrake(), secure=True)
    assert client.web_url_for("error", 4) == "https://acme.airbrake.io/groups/4"


def test_deploys_for_project() -> None:
    fake = FakeAirbrake(
        deploys={
            3: [
                {"id": 1, "project_id": 3, "rails_env": "production",
                 "scm_revision": "abc123", "created_at": NOW},
                {"id": 2, "project_id": 3, "rails_env": "staging"},
            ]
        }
    )
    client = _client(fake)

    deploys = client.deploys(3)

    assert [(d.id, d.rails_env) for d in deploys] == [(1, "production"), (2, "staging")]
    assert deploys[0].created_at == NOW
    assert client.deploys(4) == []
    assert fake.paths() == ["/projects/3/deploys.xml", "/projects/4/deploys.xml"]


def _answering(body: bytes, status: int = 200) -> AirbrakeClient:
    return AirbrakeClient(
        ClientConfig(account="acme", auth_token="tok"),
        session=StaticSession(FakeResponse(status, body)),
    )


def test_errors_body_with_ok_status_fails_every_read() -> None:
    client = _answering(b"<errors><error>Invalid API key</error></errors>")

    with pytest.raises(ServerError, match="Invalid API key"):
        client.list_projects()
    with pytest.raises(AirbrakeError):
        client.sync_all(datetime(2020, 1, 1, tzinfo=timezone.utc))


@pytest.mark.parametrize("body", [b"", b"<html><body>maintenance</body></html>"])
def test_unexpected_root_is_malformed(body: bytes) -> None:
    client = _answering(body)

    with pytest.raises(MalformedResponseError):
        client.list_projects()
    with pytest.raises(MalformedResponseError):
        client.list_errors(_hours_ago(10), NOW)
    with pytest.raises(MalformedResponseError):
        client.notice_stubs(7)


def test_rails_empty_array_reads_as_empty_page() -> None:
    client = _answering(b'<nil-classes type="array"/>')

    assert client.errors(page=1) == []
    assert client.list_errors(_hours_ago(10), NOW) == []


def test_error_unwraps_groups_array() -> None:
    body = groups_xml([{"id": 4, "project_id": 1, "error_class": "Timeout"}])
    assert _answering(body.encode()).error(4).error_class == "Timeout"


def test_error_with_empty_groups_array_is_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        _answering(b'<groups type="array"></groups>').error(4)


def test_naive_window_bounds_are_utc() -> None:
    fake = FakeAirbrake(groups=_groups(25), per_page=20)
    client = _client(fake)

    errors = client.list_errors(_hours_ago(18.5).replace(tzinfo=None))
    assert [e.id for e in errors] == list(range(1, 19))

    errors = client.list_errors(
        _hours_ago(18.5).replace(tzinfo=None), NOW.replace(tzinfo=None)
    )
    assert [e.id for e in errors] == list(range(1, 19))


def test_naive_since_for_notices_and_sync() -> None:
    fake = FakeAirbrake(
        projects=[{"id": 1, "name": "Shop"}],
        groups=_groups(2),
        notices={1: _notices(range(1, 3)), 2: _notices(range(3, 4))},
    )
    client = _client(fake)
    since = _hours_ago(10).replace(tzinfo=None)

    assert [s.id for s in client.notices_since(1, since)] == [1, 2]
    notices = client.sync_all(since)
    assert sorted(n.id for n in notices) == [1, 2, 3]
    assert {n.project_name for n in notices} == {"Shop"}


def test_max_pages_caps_error_walk() -> None:
    fake = FakeAirbrake(groups=_groups(30), per_page=5)

    errors = _client(fake, max_pages=2).list_errors(_hours_ago(100), NOW)

    assert [e.id for e in errors] == list(range(1, 11))
    assert fake.pages("/groups.xml") == [1, 2]


def test_max_pages_caps_notice_walk() -> None:
    fake = FakeAirbrake(notices={7: _notices(range(1, 30))}, per_page=4)

    stubs = _client(fake, max_pages=3).notices_since(7, _hours_ago(100), NOW)

    assert [s.id for s in stubs] == list(range(1, 13))
    assert fake.pages("/groups/7/notices.xml") == [1, 2, 3]
