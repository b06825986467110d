"""
Celery worker configuration
Task queue for document enrichment (text extraction, thumbnails, OCR)
"""

from celery import Celery
from docshelf.config import settings

celery_app = Celery(
    "docshelf",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "docshelf.tasks.enrich_document",
        "docshelf.tasks.retry_pending_documents"
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # Redeliver tasks whose worker died mid-run; the tasks are idempotent
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=900,
    task_soft_time_limit=840,
    worker_max_tasks_per_child=500,
    worker_prefetch_multiplier=1,
)

# Celery Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    'retry-pending-documents': {
        'task': 'retry_pending_documents',
        'schedule': 600.0,  # every 10 minutes
        'options': {
            'expires': 300.0,
        }
    },
}
