from celery import Celery

from portal.core.config import settings


celery_app = Celery(
    "pilgrimage_portal",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["portal.queue.tasks.notifications"],
)

celery_app.conf.update(
    task_default_queue=settings.NOTIFY_QUEUE_NAME,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_eager_propagates=False,
    beat_schedule={
        "tour-reminders-daily": {
            "task": "notifications.tour_reminders",
            "schedule": 24 * 60 * 60,
        },
    },
)
