"""Observability setup for the backend.

Supports three modes controlled by the ``OBSERVABILITY`` setting:

- ``"logfire"``: Pydantic Logfire (set ``LOGFIRE_TOKEN`` env var)
- ``"otel"``: raw OpenTelemetry with OTLP HTTP exporter
- ``"off"``: no exporters (default); pipeline spans become no-ops

Pipeline code only talks to the OpenTelemetry API through ``get_tracer``
and ``span_attributes``; both backends pick those spans up.
"""

from __future__ import annotations

from fastapi import FastAPI
from loguru import logger
from opentelemetry import trace

from bents_assistant import __version__
from bents_assistant.config import Settings
from bents_assistant.domain.models import UserProfile


def setup_telemetry(app: FastAPI, settings: Settings) -> None:
    """Initialise observability providers and instrument the FastAPI app.

    Call this once during application startup.  When ``settings.observability``
    is ``"off"`` this function is a no-op.
    """
    mode = settings.observability.lower()

    if mode == "off":
        logger.info("Observability disabled (OBSERVABILITY=off)")
        return

    if mode == "logfire":
        _setup_logfire(app, settings)
    elif mode == "otel":
        _setup_otel(app, settings)
    else:
        logger.warning("Unknown observability mode '{}', disabling", mode)


def _setup_logfire(app: FastAPI, settings: Settings) -> None:
    """Configure Pydantic Logfire and instrument FastAPI."""
    import logfire

    logfire.configure(service_name=settings.otel_service_name)
    logfire.instrument_fastapi(app)

    logger.info("Logfire enabled | service={}", settings.otel_service_name)


def _setup_otel(app: FastAPI, settings: Settings) -> None:
    """Configure raw OpenTelemetry with OTLP HTTP exporter."""
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
        }
    )

    provider = TracerProvider(resource=resource)
    otlp_exporter = OTLPSpanExporter(endpoint=f"{settings.otel_exporter_otlp_endpoint}/v1/traces")
    provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    if settings.otel_console_exporter:
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)

    logger.info(
        "OpenTelemetry enabled | service={} | endpoint={}",
        settings.otel_service_name,
        settings.otel_exporter_otlp_endpoint,
    )


def is_observability_active(settings: Settings) -> bool:
    """Return True when any observability backend is enabled."""
    return settings.observability.lower() in ("logfire", "otel")


def get_instrumentation_settings(settings: Settings):
    """PydanticAI ``InstrumentationSettings`` for the agent, or ``None`` when observability is off."""
    if not is_observability_active(settings):
        return None

    from pydantic_ai.models.instrumented import InstrumentationSettings

    return InstrumentationSettings()


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


def run_name(user: UserProfile | None, suffix: str) -> str:
    """Span name of the form ``{first}-{last}-{suffix}`` (blank names kept as empty)."""
    first = user.first_name if user and user.first_name else ""
    last = user.last_name if user and user.last_name else ""
    return f"{first}-{last}-{suffix}"


def span_attributes(user_id: str, user: UserProfile | None, **extra: object) -> dict[str, str]:
    """Caller identity as span attributes; ``None`` values are dropped."""
    attrs: dict[str, object] = {"user.id": user_id}
    if user is not None:
        attrs["user.first_name"] = user.first_name
        attrs["user.last_name"] = user.last_name
        attrs["user.email"] = user.email
    attrs.update(extra)
    return {k: str(v) for k, v in attrs.items() if v is not None}
