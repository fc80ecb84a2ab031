"""
Observability Layer
Structured logging and Prometheus metrics
"""
import logging

import structlog
from prometheus_client import Counter, Gauge

# =============================================================================
# PROMETHEUS METRICS
# =============================================================================

mutations_total = Counter(
    'event_planner_mutations_total',
    'Mutations handled',
    ['entity', 'operation', 'status']
)

notifications_published_total = Counter(
    'event_planner_notifications_published_total',
    'Notifications handed to the broker',
    ['event']
)
publish_failures_total = Counter(
    'event_planner_publish_failures_total',
    'Notifications that could not be published',
    ['event', 'reason']
)
notifications_delivered_total = Counter(
    'event_planner_notifications_delivered_total',
    'Notifications buffered for a local subscriber',
    ['event']
)
notifications_dropped_total = Counter(
    'event_planner_notifications_dropped_total',
    'Notifications dropped for a slow subscriber',
    ['event', 'policy']
)
active_subscribers = Gauge(
    'event_planner_active_subscribers',
    'Open subscriptions in this process',
    ['event']
)
broker_reconnects_total = Counter(
    'event_planner_broker_reconnects_total',
    'Broker reconnect attempts'
)

# =============================================================================
# LOGGING SETUP
# =============================================================================


def setup_logging(log_level: str = "INFO"):
    """Setup structured logging with structlog"""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def log_startup_info(settings):
    """Log startup information"""
    logger = structlog.get_logger(__name__)
    logger.info(
        "service_starting",
        service=settings.SERVICE_NAME,
        version=settings.VERSION,
        broker_backend=settings.BROKER_BACKEND,
        redis_host=settings.REDIS_HOST,
        redis_port=settings.REDIS_PORT,
        debug=settings.DEBUG
    )
