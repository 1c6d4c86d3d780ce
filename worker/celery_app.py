from celery import Celery

from rentdesk.core.config import settings

celery = Celery(
    "rentdesk-worker",
    broker=settings.rabbitmq_url,
    backend=settings.redis_url,
    include=["worker.tasks"],
)

celery.conf.update(
    # at-most-once: ack on receipt, never redeliver a mirror event
    task_acks_late=False,
    worker_prefetch_multiplier=1,
    task_default_queue="default",
    task_routes={
        "worker.tasks.mirror_listing_event": {"queue": "mirror"},
    },
)
