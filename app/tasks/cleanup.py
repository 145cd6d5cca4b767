"""
app/tasks/cleanup.py
Purge des fenêtres de rate limiting expirées.
Appelé périodiquement par l'APScheduler de main.py
"""
import logging

from app.utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


def sweep_rate_limits(limiter: RateLimiter) -> int:
    """Supprime les fenêtres expirées ; les fenêtres en cours ne sont jamais touchées"""
    count = limiter.cleanup()
    if count:
        logger.debug(f"Rate limit sweep: {count} fenêtre(s) expirée(s) supprimée(s)")
    return count
