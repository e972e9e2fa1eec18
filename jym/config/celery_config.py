# jym/config/celery_config.py
"""Celery configuration and task routing"""
from celery import Celery
from kombu import Queue

from jym.config.settings import get_settings

settings = get_settings()


def create_celery_app() -> Celery:
    """Create and configure Celery application"""

    celery_app = Celery(
        "jym",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=[
            "jym.tasks.conversation_tasks",
            "jym.tasks.trigger_tasks",
        ],
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,

        # Task routing
        task_routes={
            "jym.tasks.conversation_tasks.*": {"queue": "conversations"},
            "jym.tasks.trigger_tasks.*": {"queue": "triggers"},
        },

        # Queue definitions
        task_queues=(
            Queue("conversations", routing_key="conversations"),
            Queue("triggers", routing_key="triggers"),
        ),

        # Worker settings
        worker_max_tasks_per_child=1000,
        worker_prefetch_multiplier=1,
        task_acks_late=True,

        # Fix deprecation warning for Celery 6+
        broker_connection_retry_on_startup=True,
    )

    return celery_app


# Create the Celery app instance
celery_app = create_celery_app()
