"""OpenTelemetry bootstrap for the wizard's outbound service calls.

Spans are emitted by :mod:`integrations.client`; this module only installs the
global tracer provider. Configuration follows the standard ``OTEL_*``
variables so deployments can point the wizard at any OTLP/HTTP collector.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import (
    ALWAYS_OFF,
    ALWAYS_ON,
    ParentBased,
    Sampler,
    TraceIdRatioBased,
)

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "application-wizard"
_DISABLED_VALUES = frozenset({"0", "false", "off", "no"})

_INITIALISED = False


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _parse_headers(raw: str | None) -> Dict[str, str]:
    """Turn ``key=value,key2=value2`` into a header mapping, skipping junk."""

    pairs = (fragment.partition("=") for fragment in (raw or "").split(","))
    return {key.strip(): value.strip() for key, sep, value in pairs if sep and key.strip()}


def _coerce_ratio(raw: str, *, default: float) -> float:
    if not raw:
        return default
    try:
        ratio = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid OTEL_TRACES_SAMPLER_ARG %r", raw)
        return default
    return max(0.0, min(1.0, ratio))


_SAMPLERS: Dict[str, Callable[[float], Sampler]] = {
    "always_on": lambda _ratio: ALWAYS_ON,
    "always_off": lambda _ratio: ALWAYS_OFF,
    "traceidratio": TraceIdRatioBased,
    "parentbased_traceidratio": lambda ratio: ParentBased(TraceIdRatioBased(ratio)),
}


def _build_sampler() -> Sampler:
    name = _env("OTEL_TRACES_SAMPLER").lower() or "parentbased_traceidratio"
    ratio = _coerce_ratio(_env("OTEL_TRACES_SAMPLER_ARG"), default=1.0)
    factory = _SAMPLERS.get(name)
    if factory is None:
        logger.warning("Unknown OTEL_TRACES_SAMPLER %r; sampling every parent-based trace", name)
        factory = _SAMPLERS["parentbased_traceidratio"]
    return factory(ratio)


def _otlp_exporter() -> Optional[SpanExporter]:
    endpoint = _env("OTEL_EXPORTER_OTLP_ENDPOINT")
    if not endpoint:
        logger.info("No OTLP endpoint configured; service calls will not be exported")
        return None

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    timeout: Optional[int] = None
    raw_timeout = _env("OTEL_EXPORTER_OTLP_TIMEOUT")
    if raw_timeout:
        try:
            timeout = int(float(raw_timeout))
        except ValueError:
            logger.warning("Ignoring invalid OTEL_EXPORTER_OTLP_TIMEOUT %r", raw_timeout)
    return OTLPSpanExporter(
        endpoint=endpoint,
        headers=_parse_headers(os.getenv("OTEL_EXPORTER_OTLP_HEADERS")) or None,
        timeout=timeout,
    )


def _create_exporter() -> Optional[SpanExporter]:
    kind = _env("OTEL_TRACES_EXPORTER", "otlp").lower()
    if kind == "console":
        return ConsoleSpanExporter()
    if kind in {"", "none"}:
        return None
    return _otlp_exporter()


def setup_tracing(*, service_name: str | None = None, force: bool = False) -> None:
    """Install the global tracer provider once per process.

    Does nothing when ``OTEL_TRACES_ENABLED`` is falsy or no exporter is
    configured, leaving the no-op provider in place.
    """

    global _INITIALISED
    if _INITIALISED and not force:
        return
    if _env("OTEL_TRACES_ENABLED", "1").lower() in _DISABLED_VALUES:
        logger.info("Tracing disabled via OTEL_TRACES_ENABLED")
        return

    exporter = _create_exporter()
    if exporter is None:
        return

    name = service_name or _env("OTEL_SERVICE_NAME") or DEFAULT_SERVICE_NAME
    provider = TracerProvider(resource=Resource.create({"service.name": name}), sampler=_build_sampler())
    processor = SimpleSpanProcessor if isinstance(exporter, ConsoleSpanExporter) else BatchSpanProcessor
    provider.add_span_processor(processor(exporter))
    trace.set_tracer_provider(provider)

    _INITIALISED = True
    logger.info("Tracing service calls as %r", name)


__all__ = ["DEFAULT_SERVICE_NAME", "setup_tracing"]
