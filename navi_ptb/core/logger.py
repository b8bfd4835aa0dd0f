# /navi_ptb/core/logger.py
import logging
import structlog
import sentry_sdk
from prometheus_client import Counter
from navi_ptb.core.config import get_settings

# --- Prometheus Metrics ---
INVOCATIONS_EMITTED = Counter("navi_ptb_invocations_emitted_total", "Invocations appended to transaction units", ["function"])
UNITS_VALIDATED = Counter("navi_ptb_units_validated_total", "Transaction unit validations", ["outcome"])
REWARD_AGGREGATIONS = Counter("navi_ptb_reward_aggregations_total", "Reward aggregation runs", ["option", "outcome"])


def configure_logging():
    settings = get_settings()
    if settings.SENTRY_DSN:
        sentry_sdk.init(dsn=settings.SENTRY_DSN, traces_sample_rate=1.0)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(settings.LOG_LEVEL.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    return structlog.get_logger(name)


configure_logging()
