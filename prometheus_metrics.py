"""
Guild Desk - Prometheus Metrics
Counters and gauges for the conversation pipeline.
"""

from prometheus_client import Counter, Histogram, Gauge, Info, start_http_server
import logger as log


# --- Message Metrics ---

messages_processed = Counter(
    'guild_desk_messages_processed_total',
    'Total number of inbound messages that reached the conversation engine'
)

gate_decisions = Counter(
    'guild_desk_gate_decisions_total',
    'Response gate outcomes',
    ['kind', 'reason']  # kind: must_reply, probabilistic, suppress
)

responses_sent = Counter(
    'guild_desk_responses_sent_total',
    'Replies delivered to a channel',
    ['reason']
)

commands_handled = Counter(
    'guild_desk_commands_handled_total',
    'Deterministic commands answered before gating',
    ['command']  # command: dice, ver, ping, menu, reset
)


# --- API Metrics ---

api_requests = Counter(
    'guild_desk_api_requests_total',
    'Generation API requests',
    ['status']  # status: ok, error, rate_limited
)

api_request_duration = Histogram(
    'guild_desk_api_request_duration_seconds',
    'Generation API request duration in seconds',
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0]
)

generation_retries = Counter(
    'guild_desk_generation_retries_total',
    'Backoff retries after rate-limit failures'
)


# --- State Metrics ---

active_channels = Gauge(
    'guild_desk_active_channels',
    'Number of channels with a live transcript'
)


# --- Error Metrics ---

errors_total = Counter(
    'guild_desk_errors_total',
    'Total number of errors',
    ['error_type']  # error_type: config_unavailable, rate_limited, unrecoverable, unexpected, menu
)

bot_status = Info(
    'guild_desk_bot',
    'Bot version and persona'
)


class MetricsManager:
    """Centralized metrics management."""

    def __init__(self):
        self._started = False

    def start_metrics_server(self, port: int):
        """Start the Prometheus HTTP endpoint. Port 0 leaves it disabled."""
        if self._started or not port:
            return

        try:
            start_http_server(port)
            self._started = True
            log.info(f"Prometheus metrics server started on port {port}")
        except OSError as e:
            log.error(f"Failed to start metrics server: {e}")

    def record_message(self):
        messages_processed.inc()

    def record_gate_decision(self, kind: str, reason: str):
        gate_decisions.labels(kind=kind, reason=reason).inc()

    def record_response(self, reason: str):
        responses_sent.labels(reason=reason).inc()

    def record_command(self, command: str):
        commands_handled.labels(command=command).inc()

    def record_api_request(self, status: str, duration_seconds: float):
        api_requests.labels(status=status).inc()
        api_request_duration.observe(duration_seconds)

    def record_generation_retry(self):
        generation_retries.inc()

    def update_active_channels(self, count: int):
        active_channels.set(count)

    def record_error(self, error_type: str):
        errors_total.labels(error_type=error_type).inc()

    def update_bot_status(self, version: str, persona: str, online: bool):
        bot_status.info({'version': version, 'persona': persona, 'online': str(online)})


# Global metrics manager instance
metrics_manager = MetricsManager()
