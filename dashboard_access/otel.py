from __future__ import annotations

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from dashboard_access import __version__


_provider: TracerProvider | None = None
_otlp_endpoint: str | None = None
_memory_exporter: InMemorySpanExporter | None = None


def _tracer_provider(service_name: str) -> TracerProvider:
    # The global provider can only be installed once per process.
    global _provider
    if _provider is None:
        _provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name, SERVICE_VERSION: __version__}))
        trace.set_tracer_provider(_provider)
    return _provider


def setup_otel(service_name: str, enable: bool, otlp_endpoint: str | None = None) -> TracerProvider | None:
    """Install the tracer provider used by the resolver and snapshot spans.

    Spans are exported over OTLP/HTTP when ``otlp_endpoint`` is given. A
    second call with the same endpoint does not add another exporter.
    """

    global _otlp_endpoint
    if not enable:
        return None

    provider = _tracer_provider(service_name)
    if otlp_endpoint and otlp_endpoint != _otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
        _otlp_endpoint = otlp_endpoint
    return provider


def setup_inmemory_otel(service_name: str = "dashboard-access") -> InMemorySpanExporter:
    global _memory_exporter
    if _memory_exporter is None:
        _memory_exporter = InMemorySpanExporter()
        _tracer_provider(service_name).add_span_processor(SimpleSpanProcessor(_memory_exporter))
    return _memory_exporter
