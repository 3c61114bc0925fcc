"""Celery application configuration."""

from datetime import timedelta

from celery import Celery

from app.core.config import settings

# Create Celery instance
celery_app = Celery(
    "assistant_chat",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.storage_tasks"],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

# Cleanup passes must not overlap, so a run expires before the next is due
cleanup_interval = timedelta(minutes=settings.storage_cleanup_interval_minutes)
celery_app.conf.beat_schedule = {
    "cleanup-blob-storage": {
        "task": "app.tasks.storage_tasks.cleanup_storage_task",
        "schedule": cleanup_interval,
        "options": {"expires": cleanup_interval.total_seconds()},
    },
}

celery_app.conf.task_routes = {
    "app.tasks.storage_tasks.*": {"queue": "maintenance"},
}
