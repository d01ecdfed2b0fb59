from __future__ import annotations

import logging

from opentelemetry.sdk.trace import TracerProvider

from dashboard_access.config import Settings, get_settings
from dashboard_access.logging import configure_logging
from dashboard_access.otel import setup_otel


logger = logging.getLogger("dashboard_access.lifecycle")


def configure(settings: Settings | None = None) -> TracerProvider | None:
    """Wire logging and tracing for a host process.

    Safe to call more than once; both setups are idempotent.
    """

    settings = settings or get_settings()
    configure_logging()
    provider = setup_otel(settings.app_name, settings.otel_enabled, settings.otel_exporter_otlp_endpoint)
    logger.info(
        "dashboard_access_configured",
        extra={"outcome": "tracing" if provider is not None else "no_tracing"},
    )
    return provider
