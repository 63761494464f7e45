import time
import functools
from httpx import TransportError
import logging

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAY_SECONDS = 0.5


def _is_transient(error: Exception) -> bool:
    if isinstance(error, TransportError):
        return True
    return "DECRYPTION_FAILED_OR_BAD_RECORD_MAC" in str(error)


def retry_on_transient_error(func):
    """
    A decorator to retry a Supabase call if it fails with a transport error
    or the intermittent SSL DECRYPTION_FAILED_OR_BAD_RECORD_MAC error.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        for attempt in range(MAX_RETRIES):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if _is_transient(e) and attempt < MAX_RETRIES - 1:
                    logger.warning(f"Transient error on {func.__name__}. Retrying in {RETRY_DELAY_SECONDS} seconds... (Attempt {attempt + 1}/{MAX_RETRIES})")
                    time.sleep(RETRY_DELAY_SECONDS)
                else:
                    logger.error(f"{func.__name__} failed on last attempt or due to a different error: {e}")
                    raise
    return wrapper
