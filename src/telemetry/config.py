"""
OpenTelemetry setup for the SigNoz MCP Server

Exports the server's own spans and metrics over OTLP/gRPC and instruments
the httpx client used to reach SigNoz. Telemetry is opt-in: a stdio MCP
server usually has no collector running next to it.

Environment:
    OTEL_TELEMETRY_ENABLED        true/1/yes/on to enable (default off)
    OTEL_SERVICE_NAME             default "signoz-mcp-server"
    OTEL_EXPORTER_OTLP_ENDPOINT   default "http://localhost:4317"
    DEPLOYMENT_ENVIRONMENT        default "development"
    OTEL_METRIC_EXPORT_INTERVAL   milliseconds between metric exports (default 10000)
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from src.logging import get_logger

logger = get_logger('TELEMETRY')

SERVICE_VERSION = "0.1.0"
DEFAULT_EXPORT_INTERVAL_MS = 10000

_TRUE_VALUES = ('true', '1', 'yes', 'on')

_telemetry_initialized = False
_tracer = None
_meter = None
_providers = []


@dataclass(frozen=True)
class TelemetrySettings:
    """Where and as whom the server reports its own telemetry."""
    enabled: bool
    service_name: str
    endpoint: str
    environment: str
    export_interval_ms: int = DEFAULT_EXPORT_INTERVAL_MS

    def resource_attributes(self) -> Dict[str, Any]:
        return {
            "service.name": self.service_name,
            "service.version": SERVICE_VERSION,
            "service.namespace": "signoz-mcp",
            "deployment.environment": self.environment,
        }


def load_telemetry_settings() -> TelemetrySettings:
    """Read telemetry settings from the environment."""
    try:
        interval = int(os.getenv('OTEL_METRIC_EXPORT_INTERVAL', DEFAULT_EXPORT_INTERVAL_MS))
    except ValueError:
        interval = DEFAULT_EXPORT_INTERVAL_MS

    return TelemetrySettings(
        enabled=os.getenv('OTEL_TELEMETRY_ENABLED', 'false').lower() in _TRUE_VALUES,
        service_name=os.getenv('OTEL_SERVICE_NAME', 'signoz-mcp-server'),
        endpoint=os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT', 'http://localhost:4317'),
        environment=os.getenv('DEPLOYMENT_ENVIRONMENT', 'development'),
        export_interval_ms=interval,
    )


def is_telemetry_enabled() -> bool:
    return load_telemetry_settings().enabled


def initialize_telemetry(settings: Optional[TelemetrySettings] = None) -> bool:
    """
    Install tracer and meter providers and instrument httpx.

    Returns:
        True when telemetry is live, False when disabled or setup failed
    """
    global _telemetry_initialized, _tracer, _meter, _providers

    if _telemetry_initialized:
        return True

    settings = settings or load_telemetry_settings()
    if not settings.enabled:
        logger.info("telemetry disabled | set OTEL_TELEMETRY_ENABLED=true to export spans and metrics")
        return False

    from opentelemetry import metrics, trace
    from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
    from opentelemetry.sdk.metrics import MeterProvider
    from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    logger.info(f"initializing telemetry | endpoint:{settings.endpoint} | service:{settings.service_name}")

    try:
        resource = Resource.create(settings.resource_attributes())

        tracer_provider = TracerProvider(resource=resource)
        tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.endpoint, insecure=True))
        )
        trace.set_tracer_provider(tracer_provider)

        meter_provider = MeterProvider(resource=resource, metric_readers=[
            PeriodicExportingMetricReader(
                OTLPMetricExporter(endpoint=settings.endpoint, insecure=True),
                export_interval_millis=settings.export_interval_ms,
            )
        ])
        metrics.set_meter_provider(meter_provider)

        HTTPXClientInstrumentor().instrument()
    except Exception as e:
        logger.error(f"telemetry initialization failed | error_type:{type(e).__name__} | error:{e}")
        return False

    _providers = [tracer_provider, meter_provider]
    _tracer = trace.get_tracer("signoz_mcp")
    _meter = metrics.get_meter("signoz_mcp")
    _telemetry_initialized = True

    logger.info("telemetry initialization complete")
    return True


def get_tracer():
    """Tracer for server spans, or None when telemetry is off."""
    return _tracer if _telemetry_initialized else None


def get_meter():
    """Meter for server metrics, or None when telemetry is off."""
    return _meter if _telemetry_initialized else None


def shutdown_telemetry():
    """Flush and close the providers installed by initialize_telemetry."""
    global _telemetry_initialized, _providers

    if not _telemetry_initialized:
        return

    for provider in _providers:
        try:
            provider.shutdown()
        except Exception as e:
            logger.error(f"telemetry shutdown error | provider:{type(provider).__name__} | error:{e}")

    _providers = []
    _telemetry_initialized = False
    logger.info("telemetry shutdown complete")


def get_telemetry_status() -> dict:
    """Settings in effect plus whether the providers are live."""
    settings = load_telemetry_settings()
    return {
        "enabled": settings.enabled,
        "initialized": _telemetry_initialized,
        "service_name": settings.service_name,
        "endpoint": settings.endpoint,
        "environment": settings.environment,
        "tracer_available": _tracer is not None,
        "meter_available": _meter is not None,
    }
