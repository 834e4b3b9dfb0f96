import asyncio

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging as celery_setup_logging

from simcast.core.config import settings
from simcast.core.logging_config import setup_logging

_loop = None


def worker_loop() -> asyncio.AbstractEventLoop:
    """Return a shared event loop for all Celery worker tasks.

    All async tasks must use the same loop to avoid 'Future attached to
    a different loop' errors caused by the shared asyncpg connection pool.
    """
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop


@celery_setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    setup_logging()


celery_app = Celery(
    "simcast_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    beat_schedule={
        "collect-hourly-snapshots": {
            "task": "collect_hourly_snapshots",
            "schedule": crontab(minute=settings.collection_minute, hour="*"),
        },
        "cleanup-old-snapshots-daily": {
            "task": "cleanup_old_snapshots",
            "schedule": crontab(minute=0, hour=settings.cleanup_hour),
        },
    },
)

# Import tasks so they are registered with the celery app
import simcast.workers.tasks  # noqa: F401, E402
