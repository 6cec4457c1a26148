"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.
"""

from celery import Celery

from kitchen_voice.core.config import get_settings

REDIS_URL = get_settings().redis_url

celery_app = Celery(
    'kitchen_voice_worker',
    broker=REDIS_URL,
    backend=REDIS_URL,
    include=['kitchen_voice.tasks']
)

celery_app.conf.update(
    # Task settings
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # One Excel append at a time per worker process
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    result_expires=3600,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,
)


if __name__ == '__main__':
    celery_app.start()
