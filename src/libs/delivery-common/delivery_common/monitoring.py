# src/libs/delivery-common/delivery_common/monitoring.py
from prometheus_client import Counter, Histogram

# --------------------------------------------------------------------------------------
# DB metrics (used by delivery_common.utils.async_timed)
# --------------------------------------------------------------------------------------
DB_OPERATION_LATENCY_SECONDS = Histogram(
    "db_operation_latency_seconds",
    "Latency of database operations in seconds",
    labelnames=("repository", "method", "outcome"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)

# --------------------------------------------------------------------------------------
# Failure / rollback domain metrics
# --------------------------------------------------------------------------------------
REPORT_FAILURES_TRACKED_TOTAL = Counter(
    "report_failures_tracked_total",
    "Report delivery failures tracked, by reason and whether a new record was opened",
    labelnames=("reason", "outcome"),
)

ROLLBACK_SUGGESTIONS_CREATED_TOTAL = Counter(
    "rollback_suggestions_created_total",
    "Rollback suggestions persisted, by origin",
    labelnames=("origin",),
)

ROLLBACK_APPLY_TOTAL = Counter(
    "rollback_apply_total",
    "Rollback applications, by outcome",
    labelnames=("outcome",),
)

PREFERENCE_VERSIONS_APPENDED_TOTAL = Counter(
    "preference_versions_appended_total",
    "Preference versions appended, by kind (save or restore)",
    labelnames=("kind",),
)

# --------------------------------------------------------------------------------------
# HTTP metrics
# --------------------------------------------------------------------------------------
HTTP_REQUESTS_TOTAL = Counter(
    "delivery_http_requests_total",
    "HTTP requests total",
    labelnames=("service", "method", "path", "status"),
)

HTTP_REQUEST_LATENCY_SECONDS = Histogram(
    "delivery_http_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("service", "method", "path"),
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)
