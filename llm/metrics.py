"""
Routing metrics for the Intent Router.

Business counters and histograms recorded by the routing pipeline. HTTP
request metrics live in api/middleware/metrics.py; both share the default
Prometheus registry and are exposed together at /metrics.
"""

from prometheus_client import Counter, Histogram

ROUTING_DECISIONS = Counter(
    "router_routing_decisions_total",
    "Routing decisions by selected handler",
    ["handler", "fallback"],
)
ROUTING_FALLBACKS = Counter(
    "router_fallbacks_total",
    "Routing fallbacks to the default handler",
    ["reason"],
)
CLASSIFIER_LATENCY = Histogram(
    "router_classifier_duration_seconds",
    "Classifier call latency, retries included",
    ["outcome"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 15.0, 30.0],
)
PII_TOKENS_MASKED = Counter(
    "router_pii_tokens_masked_total",
    "Distinct PII values masked before classification",
    ["category"],
)


def record_routing_decision(handler: str, fallback: bool):
    """Record the handler a request was routed to."""
    ROUTING_DECISIONS.labels(handler=handler, fallback=str(fallback).lower()).inc()


def record_fallback(reason: str):
    """Record a fallback to the default handler."""
    ROUTING_FALLBACKS.labels(reason=reason).inc()


def record_classifier_latency(seconds: float, outcome: str):
    """Record classifier latency (outcome: ok | error)."""
    CLASSIFIER_LATENCY.labels(outcome=outcome).observe(seconds)


def record_pii_masked(category: str, count: int):
    """Record masked PII values for one request."""
    if count:
        PII_TOKENS_MASKED.labels(category=category).inc(count)
