"""Prometheus metrics for assessment outcomes, reasoning-service retries and history churn"""

from prometheus_client import Counter, Histogram

# Assessment metrics
assessment_counter = Counter(
    "finpulse_assessment_total",
    "Assessment pipeline runs",
    ["outcome"],  # committed | rate_limited | transient | contract | fatal
)

credit_score_band_counter = Counter(
    "finpulse_credit_score_band",
    "Committed assessments by credit score band",
    ["band"],  # risky | average | good | very_good
)

# Reasoning service metrics
reasoning_latency_histogram = Histogram(
    "finpulse_reasoning_latency_seconds",
    "Reasoning service call duration per attempt",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 40.0, 60.0],
)

reasoning_retry_counter = Counter(
    "finpulse_reasoning_retries_total",
    "Reasoning service retries by failure kind",
    ["kind"],  # rate_limited | transient
)

# History store metrics
history_eviction_counter = Counter(
    "finpulse_history_evictions_total",
    "Entries dropped from a bounded history",
    ["collection"],  # reports | logins
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def score_band(credit_score: int) -> str:
    """Same cut-offs the dashboard uses for its status badge"""
    if credit_score >= 850:
        return "very_good"
    if credit_score >= 700:
        return "good"
    if credit_score >= 550:
        return "average"
    return "risky"


def record_assessment(outcome: str, credit_score: int | None = None) -> None:
    """Record pipeline outcome and, for committed runs, the score band"""
    assessment_counter.labels(outcome=outcome).inc()
    if credit_score is not None:
        credit_score_band_counter.labels(band=score_band(credit_score)).inc()


def record_evictions(collection: str, count: int) -> None:
    if count > 0:
        history_eviction_counter.labels(collection=collection).inc(count)
