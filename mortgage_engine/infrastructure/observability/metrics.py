"""Prometheus metrics for calculator usage, application volume and lifecycle transitions"""

from prometheus_client import Counter, Histogram

# Calculator metrics
calculation_counter = Counter(
    "mortgage_calculation_total",
    "Mortgage calculations served",
    ["kind"],  # single | comparison
)

compared_rates_histogram = Histogram(
    "mortgage_compared_rates",
    "Number of effective rates in each comparison",
    buckets=[0, 1, 2, 5, 10, 20, 50],
)

# Application metrics
application_submitted_counter = Counter(
    "mortgage_application_submitted_total",
    "Mortgage applications submitted",
)

application_transition_counter = Counter(
    "mortgage_application_transition_total",
    "Application status transitions",
    ["status"],  # approved | rejected | withdrawn | completed | cancelled
)

application_number_collision_counter = Counter(
    "mortgage_application_number_collisions_total",
    "Application numbers regenerated after a uniqueness collision",
)

# Property API metrics
property_fetch_failures_counter = Counter(
    "property_fetch_failures_total",
    "Failed property catalog calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_calculation(rates_compared: int | None = None) -> None:
    """Record a single calculation, or a comparison with its rate count"""
    if rates_compared is None:
        calculation_counter.labels(kind="single").inc()
        return

    calculation_counter.labels(kind="comparison").inc()
    compared_rates_histogram.observe(rates_compared)


def record_submission() -> None:
    application_submitted_counter.inc()


def record_transition(status: str) -> None:
    application_transition_counter.labels(status=status).inc()
