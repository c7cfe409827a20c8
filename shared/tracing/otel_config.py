"""OpenTelemetry configuration for distributed tracing.

Spans are exported over OTLP/HTTP. Spans opened by ``trace_function`` carry
the request's correlation ID and the signed-in user's ID, so a trace can be
matched to its log lines.
"""

import functools
import inspect
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Status, StatusCode

from shared.logging import CORRELATION_ID_KEY, USER_ID_KEY, request_context

F = TypeVar("F", bound=Callable[..., Any])

# Log context key -> span attribute
SPAN_ATTRIBUTES = {
    CORRELATION_ID_KEY: "travelbud.correlation_id",
    USER_ID_KEY: "enduser.id",
}


def configure_tracing(
    service_name: str,
    otlp_endpoint: str = "http://localhost:4318/v1/traces",
    sampling_rate: float = 0.1,
    service_version: str = "1.0.0",
) -> TracerProvider:
    """Configure OpenTelemetry tracing for the service.

    Args:
        service_name: Name of the service (e.g., "travelbud-api")
        otlp_endpoint: OTLP/HTTP traces endpoint of the collector
        sampling_rate: Sampling rate (0.0 to 1.0)
        service_version: Version recorded on the resource

    Returns:
        Configured TracerProvider
    """
    resource = Resource(
        attributes={
            "service.name": service_name,
            "service.namespace": "travelbud",
            "service.version": service_version,
        }
    )

    provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(sampling_rate)),
    )
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
    trace.set_tracer_provider(provider)

    return provider


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


def request_attributes() -> dict:
    """Span attributes for the request currently being served."""
    return {
        SPAN_ATTRIBUTES[key]: str(value) for key, value in request_context().items()
    }


@contextmanager
def _traced(name: str, func: Callable[..., Any]) -> Iterator[trace.Span]:
    tracer = get_tracer(func.__module__)
    with tracer.start_as_current_span(
        name,
        attributes=request_attributes(),
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        span.set_attribute("code.function", func.__qualname__)
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, type(exc).__name__))
            raise
        span.set_status(Status(StatusCode.OK))


def trace_function(span_name: Optional[str] = None) -> Callable[[F], F]:
    """Decorator opening a span around a sync or async callable.

    Args:
        span_name: Span name (defaults to the function name)
    """

    def decorator(func: F) -> F:
        name = span_name or func.__name__

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with _traced(name, func):
                    return await func(*args, **kwargs)

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _traced(name, func):
                return func(*args, **kwargs)

        return sync_wrapper  # type: ignore

    return decorator
