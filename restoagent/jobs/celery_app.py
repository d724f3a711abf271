"""Celery application configuration"""

from celery import Celery
from celery.schedules import crontab
from restoagent.config import settings

# Create Celery app
celery_app = Celery(
    "restoagent",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "restoagent.jobs.tasks",
    ],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Beat schedule for periodic tasks
    beat_schedule={
        "send-reservation-reminders": {
            "task": "send_reservation_reminders",
            "schedule": crontab(hour=9, minute=0),  # Daily, the day before
        },
        "expire-waitlist-entries": {
            "task": "expire_waitlist_entries",
            "schedule": crontab(hour=2, minute=0),
        },
    },
)
