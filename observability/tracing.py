"""Optional tracing using Logfire/OpenTelemetry.

When enabled, outgoing aiohttp requests are instrumented and the pipeline
opens spans around the metadata fetch, every page fetch and every page
analysis. When disabled (the default) trace_operation is a no-op that only
logs the duration at DEBUG.

Requirements:
    pip install logfire

Enable via configuration:
    ENABLE_LOGFIRE=true
    LOGFIRE_TOKEN=your-token  # Optional for cloud dashboard
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generator

logger = logging.getLogger(__name__)


@dataclass
class TracingContext:
    """Process-wide tracing state."""
    enabled: bool = False
    service_name: str = "commentscope"


_context = TracingContext()


def setup_tracing(
    enabled: bool = False,
    service_name: str = "commentscope",
    token: str = "",
) -> TracingContext:
    """Configure Logfire and instrument the aiohttp client.

    A missing logfire package or a configuration error disables tracing
    with a log message; it never raises.

    Args:
        enabled: Whether to enable tracing
        service_name: Service name reported to Logfire
        token: Logfire authentication token

    Returns:
        The process-wide TracingContext
    """
    _context.enabled = False
    _context.service_name = service_name

    if not enabled:
        logger.debug("Tracing disabled")
        return _context

    try:
        import logfire

        logfire.configure(service_name=service_name, token=token or None)
        logfire.instrument_aiohttp_client()
        _context.enabled = True
        logger.info("Logfire tracing enabled | service=%s", service_name)
    except ImportError:
        logger.warning("Logfire not installed. Tracing disabled.")
    except Exception as e:
        logger.error("Failed to configure Logfire: %s", e)

    return _context


@contextmanager
def trace_operation(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[dict[str, Any], None, None]:
    """Trace an operation as a span.

    Yields a dict; keys added to it during the operation are attached to
    the span when it closes.

    Args:
        name: Span name
        attributes: Attributes set when the span opens
    """
    start = time.monotonic()
    result_attrs: dict[str, Any] = {}
    try:
        if _context.enabled:
            import logfire

            with logfire.span(name, **(attributes or {})) as span:
                yield result_attrs
                for key, value in result_attrs.items():
                    span.set_attribute(key, value)
        else:
            yield result_attrs
    finally:
        logger.debug("Operation '%s' completed in %.2fs", name, time.monotonic() - start)
