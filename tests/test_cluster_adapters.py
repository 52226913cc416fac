from datetime import datetime, timedelta

import pytest
import requests

from mini_warehouse.cluster.membership import (
    HttpMembershipResolver,
    InMemoryMembershipResolver,
)
from mini_warehouse.cluster.node_directory import HttpNodeDirectory, InMemoryNodeDirectory
from mini_warehouse.common.errors import MembershipServiceError


class _Response:
    def __init__(self, status_code: int, body=None, text: str = ""):
        self.status_code = status_code
        self._body = body
        self.text = text or repr(body)

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class _Session:
    def __init__(self, response=None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[tuple[str, float]] = []

    def get(self, url: str, timeout: float):
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


def test_http_membership_resolver_parses_worker_ids():
    session = _Session(_Response(200, {"worker_ids": [10003, "10004"]}))
    resolver = HttpMembershipResolver("http://membership:8000/", 2.5, session=session)

    assert resolver.resolve_node_ids(3) == [10003, 10004]
    assert session.calls == [("http://membership:8000/worker_groups/3/workers", 2.5)]


def test_http_membership_resolver_queries_every_call():
    session = _Session(_Response(200, {"worker_ids": [1]}))
    resolver = HttpMembershipResolver("http://membership:8000", session=session)

    resolver.resolve_node_ids(0)
    resolver.resolve_node_ids(0)

    assert len(session.calls) == 2


@pytest.mark.parametrize(
    "session",
    [
        _Session(error=requests.ConnectionError("refused")),
        _Session(error=requests.Timeout("slow")),
        _Session(_Response(503, text="unavailable")),
        _Session(_Response(200, {"workers": []})),
        _Session(_Response(200, ValueError("not json"), text="<html>")),
    ],
)
def test_http_membership_resolver_failures_are_membership_errors(session):
    resolver = HttpMembershipResolver("http://membership:8000", session=session)

    with pytest.raises(MembershipServiceError):
        resolver.resolve_node_ids(0)
    assert len(session.calls) == 1


def test_in_memory_membership_resolver_returns_fresh_copies():
    resolver = InMemoryMembershipResolver({0: [1, 2]})

    ids = resolver.resolve_node_ids(0)
    ids.append(99)
    resolver.add_worker(0, 3)
    resolver.remove_worker(0, 1)

    assert resolver.resolve_node_ids(0) == [2, 3]
    assert resolver.resolve_node_ids(5) == []
    assert resolver.calls == [0, 0, 5]


def test_in_memory_membership_resolver_simulated_outage():
    resolver = InMemoryMembershipResolver({0: [1]})
    resolver.fail_with(MembershipServiceError("down"))

    with pytest.raises(MembershipServiceError, match="down"):
        resolver.resolve_node_ids(0)

    resolver.fail_with(None)
    assert resolver.resolve_node_ids(0) == [1]


def test_http_node_directory_describes_node():
    session = _Session(
        _Response(
            200,
            {
                "id": 10004,
                "host": "cn-2:9050",
                "alive": True,
                "last_heartbeat": "2026-10-19T12:00:00+00:00",
                "be_port": 9060,
            },
        )
    )
    directory = HttpNodeDirectory("http://heartbeat:8000", session=session)

    node = directory.lookup(10004)

    assert node is not None
    assert node.id == 10004
    assert node.alive is True
    assert node.host == "cn-2:9050"
    assert node.last_heartbeat.year == 2026
    assert session.calls[0][0] == "http://heartbeat:8000/nodes/10004"


def test_http_node_directory_unknown_node_is_absent():
    directory = HttpNodeDirectory(
        "http://heartbeat:8000", session=_Session(_Response(404, text="nope"))
    )

    assert directory.lookup(1) is None


@pytest.mark.parametrize(
    "session",
    [
        _Session(error=requests.ConnectionError("refused")),
        _Session(_Response(500, text="boom")),
        _Session(_Response(200, {"id": 1})),
        _Session(_Response(200, ["not", "a", "node"])),
    ],
)
def test_http_node_directory_failures_are_membership_errors(session):
    directory = HttpNodeDirectory("http://heartbeat:8000", session=session)

    with pytest.raises(MembershipServiceError):
        directory.lookup(1)


def test_in_memory_node_directory_tracks_liveness():
    directory = InMemoryNodeDirectory()
    directory.upsert(10003, host="cn-1:9050/", alive=False)
    directory.upsert(10004, host="cn-2:9050")

    assert directory.lookup(10003).alive is False
    assert directory.lookup(10003).host == "cn-1:9050"
    assert directory.lookup(10004).alive is True
    assert directory.lookup(10005) is None

    directory.set_alive(10003, True)
    directory.remove(10004)

    assert directory.lookup(10003).alive is True
    assert directory.lookup(10004) is None


def test_in_memory_node_directory_heartbeat_requires_registration():
    directory = InMemoryNodeDirectory()

    with pytest.raises(KeyError):
        directory.heartbeat(1)


def test_in_memory_node_directory_expires_silent_nodes():
    directory = InMemoryNodeDirectory(ttl_seconds=30)
    directory.upsert(1)
    directory.upsert(2)

    stale = datetime.now().astimezone() - timedelta(seconds=60)
    directory._nodes[1].last_seen = stale

    assert directory.lookup(1).alive is False
    assert directory.lookup(2).alive is True

    directory.heartbeat(1)
    assert directory.lookup(1).alive is True


def test_http_adapters_cap_request_timeout_by_caller_deadline():
    membership_session = _Session(_Response(200, {"worker_ids": [1]}))
    directory_session = _Session(_Response(404, text="nope"))

    HttpMembershipResolver("http://m", 5.0, session=membership_session).resolve_node_ids(0, 0.5)
    HttpNodeDirectory("http://h", 5.0, session=directory_session).lookup(1, timeout_seconds=0.25)

    assert membership_session.calls == [("http://m/worker_groups/0/workers", 0.5)]
    assert directory_session.calls == [("http://h/nodes/1", 0.25)]
