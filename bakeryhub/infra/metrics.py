"""Prometheus metrics export."""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Request metrics
request_count = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)

# Model metrics
model_calls_total = Counter(
    "model_calls_total",
    "Total language model calls",
    ["model", "status"],
)

model_call_duration = Histogram(
    "model_call_duration_seconds",
    "Language model call duration in seconds",
    ["model"],
)

# Tool metrics
tool_invocations_total = Counter(
    "tool_invocations_total",
    "Total tool invocations",
    ["tool_name", "status"],  # status: success | failure | denied
)

tool_invocation_duration = Histogram(
    "tool_invocation_duration_seconds",
    "Tool invocation duration in seconds",
    ["tool_name"],
)

access_denials_total = Counter(
    "access_denials_total",
    "Tool invocations refused by the access gate",
    ["tool_name", "stage"],  # stage: tenant | role | quota
)

audit_write_failures_total = Counter(
    "audit_write_failures_total",
    "Audit records that could not be written",
)

# Conversation metrics
conversation_iterations = Histogram(
    "conversation_iterations",
    "Model rounds that requested tools per conversation",
    buckets=(0, 1, 2, 3, 5, 8),
)

conversations_total = Counter(
    "conversations_total",
    "Completed conversations",
    ["role", "mode"],  # mode: model | fallback | error
)

# Circuit breaker metrics
circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=half_open, 2=open)",
    ["service"],
)


def get_metrics_response() -> Response:
    """Get Prometheus metrics as HTTP response."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
