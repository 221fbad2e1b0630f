"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging
from typing import Optional

from opentelemetry import trace, metrics
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import Counter, Histogram, generate_latest, CollectorRegistry
import structlog

from .config import Settings, settings as default_settings

SERVICE_NAME = "villa-inquiries"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Business metrics
INQUIRIES_RECEIVED = Counter(
    'inquiries_received_total',
    'Inquiry form submissions by outcome',
    ['outcome'],
    registry=REGISTRY
)

OWNER_ACTIONS = Counter(
    'owner_actions_total',
    'Owner approve/decline link clicks by outcome',
    ['action', 'outcome'],
    registry=REGISTRY
)

CHECKOUT_SESSIONS = Counter(
    'checkout_sessions_total',
    'Hosted checkout session creation attempts',
    ['result'],
    registry=REGISTRY
)

PAYMENT_EVENTS = Counter(
    'payment_events_total',
    'Payment provider webhook events by kind and outcome',
    ['kind', 'outcome'],
    registry=REGISTRY
)

EMAILS_SENT = Counter(
    'emails_sent_total',
    'Outbound emails by message kind and result',
    ['kind', 'result'],
    registry=REGISTRY
)


def setup_structured_logging(config: Optional[Settings] = None):
    """Configure structured logging with structlog."""
    config = config or default_settings

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    logging.basicConfig(level=getattr(logging, config.log_level), format="%(message)s")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if config.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource(config: Settings) -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": "1.0.0",
        "environment": config.environment,
    })


def setup_tracing(config: Optional[Settings] = None):
    """Setup OpenTelemetry tracing; spans are exported only when an OTLP endpoint is set."""
    config = config or default_settings
    provider = TracerProvider(resource=_resource(config))
    if config.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otlp_endpoint)))
    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics(config: Optional[Settings] = None):
    """Setup OpenTelemetry metrics."""
    config = config or default_settings
    if config.otlp_endpoint:
        otlp_exporter = OTLPMetricExporter(endpoint=config.otlp_endpoint)
        reader = PeriodicExportingMetricReader(exporter=otlp_exporter, export_interval_millis=60000)
        metrics.set_meter_provider(MeterProvider(resource=_resource(config), metric_readers=[reader]))
    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine=None):
    """Instrument SQLAlchemy with OpenTelemetry."""
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
    else:
        SQLAlchemyInstrumentor().instrument()


def record_inquiry(outcome: str):
    INQUIRIES_RECEIVED.labels(outcome=outcome).inc()


def record_owner_action(action: str, outcome: str):
    OWNER_ACTIONS.labels(action=action, outcome=outcome).inc()


def record_checkout_session(created: bool):
    CHECKOUT_SESSIONS.labels(result="created" if created else "failed").inc()


def record_payment_event(kind: str, outcome: str):
    PAYMENT_EVENTS.labels(kind=kind, outcome=outcome).inc()


def record_email(kind: str, ok: bool):
    EMAILS_SENT.labels(kind=kind, result="sent" if ok else "failed").inc()


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)
