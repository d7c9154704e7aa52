"""
Celery Application Configuration
"""

import logging

from celery import Celery

from ..config.settings import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Create Celery app
app = Celery(
    "pricefeed",
    broker=settings.broker_url,
    backend=settings.result_backend,
    include=[
        "pricefeed.tasks.ingestion",
    ],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_default_queue=settings.uploads_queue,
    # Unacknowledged uploads go back to the broker if the worker dies
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.max_concurrency,
    worker_max_tasks_per_child=1000,
    result_expires=24 * 60 * 60,
)

if __name__ == "__main__":
    app.start()
