from __future__ import annotations

import os
from typing import Any, Awaitable, Callable, TypeVar

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from ..settings import Settings
from .logging import get_logger

T = TypeVar("T")

# (span name, span attributes, deferred call) -> result of the call
AgentCallTracer = Callable[[str, dict[str, Any], Callable[[], Awaitable[Any]]], Awaitable[Any]]

_TRACER_NAME = "llm_engine.agents"


def _truthy(v: str | None) -> bool:
    return str(v or "").strip().lower() in ("1", "true", "yes", "y", "on")


def configure_otel(settings: Settings) -> bool:
    """
    Optional OpenTelemetry setup.

    - If OTEL is disabled, do nothing.
    - If exporter config is missing, fall back to the console exporter (useful in dev).

    Returns True when a tracer provider was installed.
    """

    enabled = bool(getattr(settings, "otel_enabled", False)) or _truthy(
        os.environ.get("OTEL_ENABLED")
    )
    if not enabled:
        return False

    log = get_logger("otel")

    service_name = str(
        getattr(settings, "otel_service_name", None)
        or os.environ.get("OTEL_SERVICE_NAME")
        or "llm-engine-agents"
    ).strip()

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    endpoint = str(
        getattr(settings, "otel_exporter_otlp_endpoint", None)
        or os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT")
        or ""
    ).strip()

    if endpoint:
        exporter = OTLPSpanExporter(endpoint=endpoint)
        provider.add_span_processor(BatchSpanProcessor(exporter))
        log.info("otel_configured", exporter="otlp_http", endpoint=endpoint)
    else:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        log.info("otel_configured", exporter="console")

    trace.set_tracer_provider(provider)
    return True


def _span_value(v: Any) -> Any:
    if isinstance(v, (str, bool, int, float)):
        return v
    return str(v)


async def trace_agent_call(
    name: str, metadata: dict[str, Any], call: Callable[[], Awaitable[T]]
) -> T:
    """
    Run an agent-type hook inside a span named after the agent type.

    The span only observes: the hook's result is returned untouched and its
    exceptions propagate after being recorded.
    """
    tracer = trace.get_tracer(_TRACER_NAME)
    attributes = {k: _span_value(v) for k, v in (metadata or {}).items() if v is not None}
    with tracer.start_as_current_span(name, attributes=attributes) as span:
        result = await call()
        if isinstance(result, list):
            span.set_attribute("agent.response_count", len(result))
        return result

