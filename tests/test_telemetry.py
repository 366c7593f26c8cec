"""Tests for telemetry bootstrap helpers."""

from __future__ import annotations

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace.sampling import ALWAYS_OFF

from utils import telemetry


@pytest.fixture
def provider_calls(monkeypatch: pytest.MonkeyPatch) -> list[object]:
    calls: list[object] = []
    monkeypatch.setattr(trace, "set_tracer_provider", calls.append)
    monkeypatch.setattr(telemetry, "_INITIALISED", False)
    for key in ("OTEL_EXPORTER_OTLP_ENDPOINT", "OTEL_TRACES_EXPORTER", "OTEL_TRACES_SAMPLER", "OTEL_TRACES_ENABLED"):
        monkeypatch.delenv(key, raising=False)
    return calls


def test_setup_tracing_skips_without_endpoint(provider_calls: list[object]) -> None:
    telemetry.setup_tracing(force=True)

    assert provider_calls == []
    assert telemetry._INITIALISED is False


def test_setup_tracing_respects_disable_flag(monkeypatch: pytest.MonkeyPatch, provider_calls: list[object]) -> None:
    monkeypatch.setenv("OTEL_TRACES_ENABLED", "off")
    monkeypatch.setenv("OTEL_TRACES_EXPORTER", "console")

    telemetry.setup_tracing(force=True)

    assert provider_calls == []


def test_console_exporter_installs_provider(monkeypatch: pytest.MonkeyPatch, provider_calls: list[object]) -> None:
    monkeypatch.setenv("OTEL_TRACES_EXPORTER", "console")

    telemetry.setup_tracing(force=True)

    assert len(provider_calls) == 1
    assert telemetry._INITIALISED is True


def test_header_parsing_skips_malformed_fragments() -> None:
    assert telemetry._parse_headers("api-key=abc, broken ,x-tenant = club") == {"api-key": "abc", "x-tenant": "club"}
    assert telemetry._parse_headers(None) == {}


def test_sampler_selection(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OTEL_TRACES_SAMPLER", "always_off")

    assert telemetry._build_sampler() is ALWAYS_OFF
    assert telemetry._coerce_ratio("7", default=0.5) == 1.0
    assert telemetry._coerce_ratio("nope", default=0.5) == 0.5
