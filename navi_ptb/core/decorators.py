# /navi_ptb/core/decorators.py
# Retry policy for calls that leave the process (routing service).
# The composer itself never retries.
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
import aiohttp

from navi_ptb.core.logger import get_logger

log = get_logger(__name__)


def _log_retry(retry_state):
    log.warning(
        "NETWORK_CALL_RETRY",
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()),
    )


retriable_network_call = retry(
    retry=retry_if_exception_type((aiohttp.ClientError, TimeoutError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    before_sleep=_log_retry,
    reraise=True  # Re-raise the last exception after retries are exhausted
)
