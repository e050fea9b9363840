"""Application metrics using the Prometheus client library.

All metrics are defined here so there is a single inventory of what the
service measures. Other modules import a metric and increment/observe it
at the point of action.

  Counter    only goes up (requests served, submissions graded)
  Gauge      goes up and down (in-flight requests, live attempt sessions)
  Histogram  bucketed observations (request latency, quiz scores)
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Quiz / assignment metrics
# ---------------------------------------------------------------------------

ASSIGNMENTS_ISSUED = Counter(
    "assignments_issued_total",
    "Assignments created by the issuer",
)

ISSUANCE_FAILURES = Counter(
    "assignment_issuance_failures_total",
    "Per-student assignment creations that failed",
    ["reason"],  # duplicate|storage
)

QUIZ_SUBMISSIONS = Counter(
    "quiz_submissions_total",
    "Quiz submissions by trigger and outcome",
    ["trigger", "outcome"],  # manual|auto x graded|already_completed|failed
)

SCORE_RATIO = Histogram(
    "quiz_score_ratio",
    "Score divided by total questions for graded submissions",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

ACTIVE_ATTEMPT_SESSIONS = Gauge(
    "attempt_sessions_active",
    "Attempt sessions currently held in this process",
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
