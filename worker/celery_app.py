from celery import Celery

from biztech.core.config import settings

# Only outbox delivery runs here; the API never waits on a task result.
celery = Celery("biztech-worker", broker=settings.rabbitmq_url, backend=settings.redis_url)
celery.conf.include = ["worker.tasks"]

celery.conf.update(
    task_serializer="json",
    accept_content=["json"],
    task_acks_late=True,
    task_time_limit=120,
    worker_prefetch_multiplier=1,
    task_default_queue="default",
    task_routes={"worker.tasks.process_outbox_event": {"queue": "outbox"}},
    broker_connection_retry_on_startup=True,
)
