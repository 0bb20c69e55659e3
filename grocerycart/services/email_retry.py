import time
import random
import logging

logger = logging.getLogger(__name__)


def send_with_retry(
    channel,
    to_email: str,
    subject: str,
    html: str,
    max_attempts: int = 3,
    base_delay: float = 1.0,
) -> bool:
    last_error = None

    for attempt in range(1, max_attempts + 1):
        try:
            channel.send(to_email, subject, html)
            logger.info(f"Email sent to {to_email} (attempt {attempt})")
            return True

        except Exception as e:
            last_error = str(e)
            logger.warning(f"Attempt {attempt} failed: {last_error}")

            if "api-key" in last_error.lower():
                break  # auth error → no retry

            if attempt < max_attempts and base_delay:
                time.sleep(base_delay * (2 ** (attempt - 1)) + random.random() * base_delay)

    logger.error(f"Email to {to_email} permanently failed: {last_error}")
    return False
