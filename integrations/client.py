"""Authenticated HTTP client shared by every backend integration."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Mapping

import requests
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from config import Settings
from core.errors import ServiceError
from utils.logging_context import log_context
from utils.retry import RETRYABLE_STATUS_CODES, retry_with_backoff

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

_TOKEN_KEYS = ("authToken", "apiToken", "token", "access_token")


class ApiClient:
    """Thin ``requests`` wrapper adding tenant headers, bearer auth and tracing.

    A token is fetched lazily from ``/auth/me``. When a call is answered with
    401 the client re-authenticates once and repeats the call. One instance is
    shared by every session and worker thread, so token refreshes are
    serialised.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        session: requests.Session | None = None,
        user_id: str | None = None,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._token: str | None = None
        self._auth_lock = threading.Lock()
        self.user_id = user_id

    @property
    def settings(self) -> Settings:
        return self._settings

    def _headers(self, *, tenant: bool, token: str | None = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if tenant:
            headers["X-Elegant-Domain"] = self._settings.api_domain
            headers["X-Elegant-Auth"] = self._settings.api_auth_secret
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if self.user_id:
            headers["X-Elegant-Userid"] = self.user_id
        return headers

    def _send(
        self,
        method: str,
        url: str,
        *,
        service: str,
        headers: Mapping[str, str],
        json: Any = None,
    ) -> requests.Response:
        with tracer.start_as_current_span(f"{service}.request") as span:
            span.set_attribute("http.method", method)
            span.set_attribute("http.url", url)
            span.set_attribute("service.name", service)
            try:
                response = self._session.request(
                    method,
                    url,
                    headers=dict(headers),
                    json=json,
                    timeout=self._settings.request_timeout,
                )
            except requests.RequestException as exc:
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, exc.__class__.__name__))
                raise
            span.set_attribute("http.status_code", response.status_code)
            if response.status_code >= 400:
                span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
            return response

    def _call(
        self,
        method: str,
        url: str,
        *,
        service: str,
        headers: Mapping[str, str],
        json: Any = None,
        retry: bool = False,
    ) -> requests.Response:
        def _attempt() -> requests.Response:
            response = self._send(method, url, service=service, headers=headers, json=json)
            if response.status_code in RETRYABLE_STATUS_CODES:
                response.raise_for_status()
            return response

        attempt: Callable[[], requests.Response] = retry_with_backoff(logger=logger)(_attempt) if retry else _attempt
        try:
            return attempt()
        except requests.RequestException as exc:
            response = getattr(exc, "response", None)
            status = getattr(response, "status_code", None)
            raise ServiceError(service, exc.__class__.__name__, status_code=status) from exc

    @staticmethod
    def _decode(response: requests.Response, service: str) -> Any:
        if not response.ok:
            detail = (response.text or response.reason or "").strip()[:200]
            raise ServiceError(service, detail or "request rejected", status_code=response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ServiceError(service, "response was not valid JSON", status_code=response.status_code) from exc

    def authenticate(self) -> str:
        """Fetch a fresh bearer token from ``/auth/me``."""

        with self._auth_lock:
            return self._fetch_token()

    def _ensure_token(self, *, rejected: str | None = None) -> str:
        # A token refreshed by another thread after ``rejected`` failed is reused.
        with self._auth_lock:
            if self._token and self._token != rejected:
                return self._token
            return self._fetch_token()

    def _fetch_token(self) -> str:
        url = f"{self._settings.api_base_url}/auth/me"
        with log_context(service="auth"):
            response = self._call("GET", url, service="auth", headers=self._headers(tenant=True))
            data = self._decode(response, "auth")
            token = None
            if isinstance(data, Mapping):
                token = next((data[key] for key in _TOKEN_KEYS if data.get(key)), None)
            if not token:
                raise ServiceError("auth", "no API token received from authentication")
            self._token = str(token)
            logger.debug("Authenticated against %s", self._settings.api_base_url)
        return self._token

    def request(
        self,
        method: str,
        path: str,
        *,
        service: str,
        json: Any = None,
        base_url: str | None = None,
        tenant: bool = True,
        retry: bool = False,
    ) -> Any:
        """Send an authenticated request and return the decoded JSON body.

        Raises:
            ServiceError: On transport failures, non-2xx answers and bodies
                that are not JSON.
        """

        url = f"{base_url or self._settings.api_base_url}{path}"
        with log_context(service=service):
            token = self._ensure_token()
            response = self._call(
                method,
                url,
                service=service,
                headers=self._headers(tenant=tenant, token=token),
                json=json,
                retry=retry,
            )
            if response.status_code == 401:
                logger.info("Token rejected by %s; re-authenticating once", service)
                token = self._ensure_token(rejected=token)
                response = self._call(
                    method,
                    url,
                    service=service,
                    headers=self._headers(tenant=tenant, token=token),
                    json=json,
                    retry=retry,
                )
            return self._decode(response, service)

    def get(self, path: str, *, service: str, retry: bool = True, **kwargs: Any) -> Any:
        return self.request("GET", path, service=service, retry=retry, **kwargs)

    def post(self, path: str, payload: Any, *, service: str, **kwargs: Any) -> Any:
        return self.request("POST", path, service=service, json=payload, **kwargs)


__all__ = ["ApiClient"]
