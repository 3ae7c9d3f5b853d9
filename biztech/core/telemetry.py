import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from biztech.core.config import settings
from biztech.core.db import engine

log = logging.getLogger(__name__)


def setup_telemetry(app) -> None:
    if not settings.telemetry_enabled:
        log.info("telemetry disabled")
        return

    provider = TracerProvider(
        resource=Resource.create({
            "service.name": settings.service_name,
            "service.version": app.version,
            "deployment.environment": settings.env,
        })
    )
    exporter = OTLPSpanExporter(endpoint=f"{settings.otlp_endpoint.rstrip('/')}/v1/traces")
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    # health checks would drown the real traffic
    FastAPIInstrumentor.instrument_app(app, excluded_urls="/v1/health")
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
