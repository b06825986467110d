"""
Retry Logic Utilities

Tenacity decorators for calls to external collaborators that fail
transiently (LLM providers, database connections).
"""

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
    after_log
)
import litellm
from docshelf.config import settings
import logging

logger = logging.getLogger(__name__)

TRANSIENT_LLM_ERRORS = (
    litellm.RateLimitError,
    litellm.Timeout,
    litellm.APIConnectionError,
    litellm.ServiceUnavailableError,
    ConnectionError,
    TimeoutError,
)


def retry_on_llm_error(max_attempts: int = None):
    """
    Decorator for retrying LLM calls on transient provider errors

    Args:
        max_attempts: Maximum retry attempts (default: settings.RETRY_MAX_ATTEMPTS)

    Returns:
        Tenacity retry decorator
    """
    max_attempts = max_attempts or settings.RETRY_MAX_ATTEMPTS

    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=2,
            max=30,
            exp_base=settings.RETRY_EXPONENTIAL_BASE
        ),
        retry=retry_if_exception_type(TRANSIENT_LLM_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG),
        reraise=True
    )


def retry_on_database_error(max_attempts: int = 3):
    """
    Decorator for retrying on database connection errors

    Args:
        max_attempts: Maximum retry attempts (default: 3)
    """
    from sqlalchemy.exc import OperationalError

    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=1,
            max=10,
            exp_base=2
        ),
        retry=retry_if_exception_type((OperationalError, ConnectionError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG),
        reraise=True
    )
