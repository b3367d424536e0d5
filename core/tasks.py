# core/tasks.py

import logging

from celery import shared_task
from celery.signals import worker_ready

from .stats import StatsCache

logger = logging.getLogger("hackreg.stats")


@shared_task
def refresh_user_stats():
    """
    Periodic (celery beat) recomputation of the user stats snapshot.
    """
    try:
        StatsCache().refresh_user_stats()
    except Exception:
        # Keep serving the previous snapshot, try again next tick
        logger.exception("Refreshing user stats failed")


@shared_task
def refresh_team_stats():
    """
    Periodic (celery beat) recomputation of the team stats snapshot.
    """
    try:
        StatsCache().refresh_team_stats()
    except Exception:
        logger.exception("Refreshing team stats failed")


@worker_ready.connect
def refresh_stats_on_startup(sender=None, **kwargs):
    # First snapshot right away instead of one interval after startup
    refresh_team_stats.delay()
    refresh_user_stats.delay()
