"""
Prometheus metrics for the assessment service.
Exposed by the app on GET /metrics.
"""
from prometheus_client import Counter, Histogram

# Attempts opened, by outcome (new, resumed)
attempts_started_total = Counter(
    "assessment_attempts_started_total",
    "Total number of quiz attempts started or resumed",
    ["outcome"],
)

# Attempts graded and closed, by pass/fail
attempts_submitted_total = Counter(
    "assessment_attempts_submitted_total",
    "Total number of quiz attempts submitted",
    ["result"],
)

# Domain errors returned to clients (QuizLocked, AttemptClosed, ...)
errors_total = Counter(
    "assessment_errors_total",
    "Total number of domain errors returned",
    ["error"],
)

# Attempt percentage distribution
attempt_percentage = Histogram(
    "assessment_attempt_percentage",
    "Percentage scored on submitted attempts",
    buckets=(10, 20, 30, 40, 50, 60, 70, 80, 90, 100),
)


def mark_started(resumed: bool) -> None:
    """Count an attempt start; `resumed` when an open attempt was reused."""
    attempts_started_total.labels(outcome="resumed" if resumed else "new").inc()


def mark_submitted(percentage: float, passed: bool) -> None:
    """Count a submission and record its percentage."""
    attempts_submitted_total.labels(result="pass" if passed else "fail").inc()
    attempt_percentage.observe(percentage)


def mark_error(name: str) -> None:
    errors_total.labels(error=name).inc()
