"""Business metrics for the SongVote application.

Instruments are no-ops until ``telemetry.setup_telemetry`` installs a meter
provider.
"""

from opentelemetry import metrics

meter = metrics.get_meter(__name__)

# HTTP Request Metrics
http_request_duration = meter.create_histogram(
    name="http_request_duration_seconds",
    description="Duration of HTTP requests in seconds",
    unit="s",
)

http_requests_total = meter.create_counter(
    name="http_requests_total",
    description="Total number of HTTP requests",
)

http_request_errors = meter.create_counter(
    name="http_request_errors_total",
    description="Total number of HTTP request errors",
)

# Business Metrics
users_registered_total = meter.create_counter(
    name="users_registered_total",
    description="Total number of users registered",
)

songs_added_total = meter.create_counter(
    name="songs_added_total",
    description="Total number of songs added to the queue",
)

votes_cast_total = meter.create_counter(
    name="votes_cast_total",
    description="Total number of votes cast",
)

vetoes_cast_total = meter.create_counter(
    name="vetoes_cast_total",
    description="Total number of vetoes cast",
)

songs_active = meter.create_up_down_counter(
    name="songs_active",
    description="Number of songs currently in the queue",
)


def record_http_request(method: str, endpoint: str, status_code: int, duration: float):
    """Record HTTP request metrics."""
    labels = {"method": method, "endpoint": endpoint, "status_code": str(status_code)}

    http_request_duration.record(duration, labels)
    http_requests_total.add(1, labels)

    if status_code >= 400:
        http_request_errors.add(1, labels)


def record_user_registered():
    users_registered_total.add(1)


def record_song_added():
    songs_added_total.add(1)
    songs_active.add(1)


def record_song_deleted():
    songs_active.add(-1)


def record_vote_cast():
    votes_cast_total.add(1)


def record_veto_cast():
    vetoes_cast_total.add(1)
