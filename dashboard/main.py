"""AgileAiAgents Dashboard entry point.

Configures logging and tracing, then serves the FastAPI app with uvicorn.
"""

import logging
import sys

import uvicorn

from dashboard import config

logging.basicConfig(
    level=config.log_level(),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("agile-dashboard")


def main():
    """Start the dashboard server."""
    from dashboard.telemetry import init_telemetry

    init_telemetry()

    from dashboard.server import app

    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

    FastAPIInstrumentor.instrument_app(app)
    logger.info("FastAPI instrumented with OpenTelemetry")

    host, port = config.server_host(), config.server_port()
    logger.info(f"AgileAiAgents Dashboard starting on http://{host}:{port}")
    if config.auth_enabled():
        logger.info("Dashboard authentication enabled")

    uvicorn.run(app, host=host, port=port, log_level=config.log_level().lower())


if __name__ == "__main__":
    main()
