"""Celery application configuration."""
from celery import Celery
from celery.schedules import crontab

from medaid.config import settings

celery_app = Celery(
    "medaid",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["medaid.tasks.claim_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT,
    task_soft_time_limit=settings.CELERY_TASK_SOFT_TIME_LIMIT,
    worker_prefetch_multiplier=4,
    worker_max_tasks_per_child=1000,  # Restart worker after N tasks
    task_acks_late=True,  # Webhooks survive a worker crash mid-task
    task_reject_on_worker_lost=True,
    result_expires=3600,
)

celery_app.conf.beat_schedule = {
    "reap-stale-claims": {
        "task": "medaid.tasks.claim_tasks.reap_stale_claims",
        "schedule": crontab(minute="*/5"),
    },
}

if __name__ == "__main__":
    celery_app.start()
