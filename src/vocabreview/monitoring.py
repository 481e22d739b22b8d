"""Monitoring configuration for the review engine."""
from prometheus_client import Counter, Histogram, start_http_server

# Session metrics
review_sessions = Counter(
    "vocabreview_sessions_total",
    "Total number of review sessions started",
    ["mode"],
)

session_cards = Histogram(
    "vocabreview_session_cards",
    "Number of cards in a review session",
    buckets=[1, 5, 10, 20, 50],
)

# Grading metrics
cards_graded = Counter(
    "vocabreview_cards_graded_total",
    "Total number of committed card grades",
    ["mode", "grade"],
)

answers_checked = Counter(
    "vocabreview_answers_checked_total",
    "Total number of typed answers checked",
    ["mode", "feedback"],
)

# Collaborator metrics
progress_write_failures = Counter(
    "vocabreview_progress_write_failures_total",
    "Total number of rejected progress writes",
    ["error_type"],
)

audio_requests = Counter(
    "vocabreview_audio_requests_total",
    "Total number of pronunciation playback requests",
    ["source"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
