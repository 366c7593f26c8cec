from __future__ import annotations

import json
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pytest
import requests

from config import Settings
from core.errors import ServiceError
from integrations.client import ApiClient


def _response(status: int, body: Any = None, *, raw: bytes | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = raw if raw is not None else (b"" if body is None else json.dumps(body).encode())
    response.encoding = "utf-8"
    response.reason = "Test"
    response.url = "https://api.test"
    return response


class _ScriptedSession:
    """Answers ``request`` calls from a queue keyed by URL suffix."""

    def __init__(self, script: dict[str, list[Any]]) -> None:
        self.script = script
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append({"method": method, "url": url, **kwargs})
        for suffix, queue in self.script.items():
            if url.endswith(suffix):
                item = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(item, Exception):
                    raise item
                return item
        raise AssertionError(f"unexpected request to {url}")


@pytest.fixture
def client_settings() -> Settings:
    return Settings(
        api_base_url="https://api.test",
        api_domain="club.example.org",
        api_auth_secret="s3cret",
        request_timeout=4.0,
    )


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("time.sleep", lambda seconds: None)


def test_request_authenticates_and_sends_tenant_headers(client_settings: Settings) -> None:
    session = _ScriptedSession(
        {"/auth/me": [_response(200, {"authToken": "tok-1"})], "/leads": [_response(200, {"id": 7})]}
    )
    client = ApiClient(client_settings, session=session, user_id="u-9")

    data = client.post("/leads", {"email": "a@b.c"}, service="leads")

    assert data == {"id": 7}
    auth_call, lead_call = session.calls
    assert auth_call["headers"]["X-Elegant-Domain"] == "club.example.org"
    assert "Authorization" not in auth_call["headers"]
    assert lead_call["headers"]["Authorization"] == "Bearer tok-1"
    assert lead_call["headers"]["X-Elegant-Auth"] == "s3cret"
    assert lead_call["headers"]["X-Elegant-Userid"] == "u-9"
    assert lead_call["json"] == {"email": "a@b.c"}
    assert lead_call["timeout"] == 4.0


def test_token_is_reused_between_requests(client_settings: Settings) -> None:
    session = _ScriptedSession({"/auth/me": [_response(200, {"token": "tok"})], "/items": [_response(200, [])]})
    client = ApiClient(client_settings, session=session)

    client.get("/items", service="items")
    client.get("/items", service="items")

    assert [call["url"] for call in session.calls].count("https://api.test/auth/me") == 1


def test_unauthorised_response_triggers_single_reauthentication(client_settings: Settings) -> None:
    session = _ScriptedSession(
        {
            "/auth/me": [_response(200, {"authToken": "old"}), _response(200, {"authToken": "new"})],
            "/application": [_response(401), _response(200, {"id": 12})],
        }
    )
    client = ApiClient(client_settings, session=session)

    assert client.post("/application", {}, service="applications") == {"id": 12}
    assert session.calls[-1]["headers"]["Authorization"] == "Bearer new"


class _SharedSession:
    """Rejects the first token only once two callers are using it."""

    def __init__(self) -> None:
        self.auth_calls = 0
        self._lock = threading.Lock()
        self._barrier = threading.Barrier(2, timeout=5)

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        if url.endswith("/auth/me"):
            with self._lock:
                self.auth_calls += 1
                token = f"tok-{self.auth_calls}"
            return _response(200, {"authToken": token})
        if kwargs["headers"]["Authorization"] == "Bearer tok-1":
            self._barrier.wait()
            return _response(401)
        return _response(200, {"token": kwargs["headers"]["Authorization"]})


def test_threads_sharing_a_client_refresh_the_token_once(client_settings: Settings) -> None:
    session = _SharedSession()
    client = ApiClient(client_settings, session=session)

    with ThreadPoolExecutor(max_workers=2) as executor:
        results = list(executor.map(lambda _: client.get("/items", service="items"), range(2)))

    # One login, then a single refresh after both requests were rejected.
    assert session.auth_calls == 2
    assert results == [{"token": "Bearer tok-2"}, {"token": "Bearer tok-2"}]


def test_authentication_without_token_fails(client_settings: Settings) -> None:
    session = _ScriptedSession({"/auth/me": [_response(200, {"user": "x"})]})

    with pytest.raises(ServiceError, match="no API token"):
        ApiClient(client_settings, session=session).get("/items", service="items")


def test_rejected_request_raises_service_error(client_settings: Settings) -> None:
    session = _ScriptedSession(
        {"/auth/me": [_response(200, {"authToken": "t"})], "/leads": [_response(422, raw=b"email invalid")]}
    )

    with pytest.raises(ServiceError) as excinfo:
        ApiClient(client_settings, session=session).post("/leads", {}, service="leads")

    assert excinfo.value.status_code == 422
    assert excinfo.value.message == "email invalid"
    assert str(excinfo.value) == "leads failed (422): email invalid"


def test_invalid_json_raises_service_error(client_settings: Settings) -> None:
    session = _ScriptedSession(
        {"/auth/me": [_response(200, {"authToken": "t"})], "/items": [_response(200, raw=b"<html>")]}
    )

    with pytest.raises(ServiceError, match="not valid JSON"):
        ApiClient(client_settings, session=session).get("/items", service="items")


def test_idempotent_reads_retry_transient_failures(client_settings: Settings) -> None:
    session = _ScriptedSession(
        {
            "/auth/me": [_response(200, {"authToken": "t"})],
            "/items": [_response(503), requests.ConnectionError("reset"), _response(200, {"ok": True})],
        }
    )

    assert ApiClient(client_settings, session=session).get("/items", service="items") == {"ok": True}
    assert len([call for call in session.calls if call["url"].endswith("/items")]) == 3


def test_writes_are_not_retried(client_settings: Settings) -> None:
    session = _ScriptedSession(
        {"/auth/me": [_response(200, {"authToken": "t"})], "/leads": [_response(503), _response(200, {"id": 1})]}
    )

    with pytest.raises(ServiceError) as excinfo:
        ApiClient(client_settings, session=session).post("/leads", {}, service="leads")

    assert excinfo.value.status_code == 503
    assert len([call for call in session.calls if call["url"].endswith("/leads")]) == 1


def test_transport_failure_surfaces_after_retries(client_settings: Settings) -> None:
    session = _ScriptedSession(
        {"/auth/me": [_response(200, {"authToken": "t"})], "/items": [requests.Timeout("slow")]}
    )

    with pytest.raises(ServiceError) as excinfo:
        ApiClient(client_settings, session=session).get("/items", service="items")

    assert excinfo.value.status_code is None
    assert len([call for call in session.calls if call["url"].endswith("/items")]) == 3
