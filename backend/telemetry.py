"""
OpenTelemetry hooks for the career agents backend.

configure_telemetry() installs the tracer provider (with an OTLP exporter when
OTEL_EXPORTER_OTLP_ENDPOINT is set) and instruments FastAPI. The remaining
helpers degrade to no-ops when OpenTelemetry is not installed, so the pipeline
can always open spans and tag them with run, routing and token-usage data.
"""

import contextlib
import os
import structlog

logger = structlog.get_logger()

# Service metadata
SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "career-agents")
SERVICE_VERSION = "1.0.0"
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


def _build_provider():
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider

    provider = TracerProvider(resource=Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "service.namespace": "career-agents",
        "deployment.environment": ENVIRONMENT,
    }))

    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
        logger.info("otel_otlp_configured", endpoint=otlp_endpoint)
    return provider


def configure_telemetry(app=None):
    """
    Install the tracer provider and instrument the FastAPI app.

    Args:
        app: FastAPI app instance for instrumentation
    """
    try:
        from opentelemetry import trace

        trace.set_tracer_provider(_build_provider())

        if app:
            from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
            FastAPIInstrumentor.instrument_app(app, excluded_urls="health,ready")
            logger.info("otel_fastapi_instrumented")

        logger.info("otel_configured", service=SERVICE_NAME, environment=ENVIRONMENT)
    except ImportError as e:
        logger.warning("otel_not_available", error=str(e))
    except Exception as e:
        logger.error("otel_configuration_failed", error=str(e))


def get_tracer(name: str = SERVICE_NAME):
    """Tracer for one pipeline component, or None without OpenTelemetry."""
    try:
        from opentelemetry import trace
    except ImportError:
        return None
    return trace.get_tracer(f"{SERVICE_NAME}.{name}" if name != SERVICE_NAME else name)


def traced_span(tracer, span_name: str):
    """Span context manager; a no-op context yielding None when tracer is None."""
    if tracer is None:
        return contextlib.nullcontext()
    return tracer.start_as_current_span(span_name)


def get_current_trace_context() -> dict | None:
    """Hex ids of the active span: {"trace_id": ..., "span_id": ...}, or None outside a span."""
    try:
        from opentelemetry import trace
    except ImportError:
        return None

    span_ctx = trace.get_current_span().get_span_context()
    if span_ctx is None or not span_ctx.is_valid:
        return None
    return {
        "trace_id": f"{span_ctx.trace_id:032x}",
        "span_id": f"{span_ctx.span_id:016x}",
    }


def set_span_attributes(span, **attributes) -> None:
    """Set every non-None attribute on span. No-op without a recording span."""
    if span is None or not hasattr(span, "set_attribute"):
        return
    try:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)
    except Exception as e:
        logger.warning("otel_span_attributes_failed", error=str(e))


def record_token_usage(span, stats) -> None:
    """Attach one LLM call's inference stats to a span."""
    set_span_attributes(span, **{
        "llm.model": stats.model,
        "llm.tokens.input": stats.input_tokens,
        "llm.tokens.output": stats.output_tokens,
        "llm.duration_ms": stats.duration_ms,
        "llm.cost_usd": stats.estimated_cost or None,
    })
