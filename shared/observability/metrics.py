from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)
from fastapi import Response


llm_requests = Counter(
    "llm_requests_total",
    "Completion requests by terminal outcome",
    ["outcome"],
)

llm_retries = Counter(
    "llm_retries_total",
    "Backend attempts that were retried",
    ["reason"],
)

llm_cache_lookups = Counter(
    "llm_cache_lookups_total",
    "Response cache lookups",
    ["result"],
)

llm_backoff_seconds = Histogram(
    "llm_backoff_seconds",
    "Time slept between backend attempts",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

llm_tokens = Counter(
    "llm_tokens_total",
    "Total LLM tokens consumed",
    ["service", "direction"],
)

pr_creation_latency = Histogram(
    "pr_creation_latency_seconds",
    "Latency of pull request creation",
    buckets=(1.0, 5.0, 10.0, 30.0, 60.0, 120.0),
)


def metrics_response() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
