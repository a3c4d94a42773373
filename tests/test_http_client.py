from __future__ import annotations

import asyncio

import pytest
import requests
from tenacity import wait_none

from tile_deck.core.errors import TransportError
from tile_deck.core.fetcher import normalize_response
from tile_deck.core.http_client import USER_AGENT, HTTPClient


def make_response(status: int, body: bytes = b"{}", reason: str = "OK") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.reason = reason
    response._content = body
    response.headers["Content-Type"] = "application/json"
    return response


class ScriptedSession(requests.Session):
    """Session whose ``get`` replays a list of responses or exceptions."""

    def __init__(self, script) -> None:
        super().__init__()
        self.script = list(script)
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        outcome = self.script.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def client_for(script, max_attempts: int = 3) -> HTTPClient:
    return HTTPClient(max_attempts=max_attempts, session=ScriptedSession(script), backoff=wait_none())


def test_get_returns_successful_response():
    client = client_for([make_response(200, b'{"last": "1.0"}')])

    response = client.get("https://example.test/ticker", params={"q": "x"})

    assert response.json() == {"last": "1.0"}
    url, kwargs = client.session.calls[0]
    assert url == "https://example.test/ticker"
    assert kwargs["params"] == {"q": "x"}
    assert kwargs["timeout"] == 10.0


def test_sets_user_agent():
    client = client_for([])
    assert client.session.headers["User-Agent"] == USER_AGENT


def test_non_2xx_raises_transport_error_with_status():
    client = client_for([make_response(503, reason="Service Unavailable")])

    with pytest.raises(TransportError) as exc_info:
        client.get("https://example.test")

    assert exc_info.value.status == 503
    assert "503" in str(exc_info.value)
    assert len(client.session.calls) == 1


def test_retries_connection_errors():
    client = client_for([
        requests.exceptions.ConnectionError("reset"),
        requests.exceptions.Timeout("slow"),
        make_response(200),
    ])

    response = client.get("https://example.test")

    assert response.status_code == 200
    assert len(client.session.calls) == 3


def test_gives_up_after_max_attempts():
    client = client_for([requests.exceptions.ConnectionError("down")] * 2, max_attempts=2)

    with pytest.raises(requests.exceptions.ConnectionError):
        client.get("https://example.test")

    assert len(client.session.calls) == 2


def test_client_errors_are_not_retried():
    client = client_for([make_response(404, reason="Not Found"), make_response(200)])

    with pytest.raises(TransportError):
        client.get("https://example.test")

    assert len(client.session.calls) == 1


def test_retriever_runs_request_off_the_loop():
    client = client_for([make_response(200, b'{"v": 3}')])
    retrieve = client.retriever("https://example.test", {"a": "b"})

    response = asyncio.run(retrieve())

    assert normalize_response(response) == (200, {"v": 3})
    assert client.session.calls[0][1]["params"] == {"a": "b"}
