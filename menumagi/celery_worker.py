"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.

Run with:
    celery -A menumagi.celery_worker worker --loglevel=info
"""

from celery import Celery

from menumagi.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "menumagi_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["menumagi.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Kolkata",
    enable_utc=True,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    # Results expire after 1 hour
    result_expires=3600,

    # Acknowledge after completion; requeue if the worker dies
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,
)


if __name__ == "__main__":
    celery_app.start()
