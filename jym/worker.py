"""
Celery worker entry point
Runs conversation turns and fires triggers
"""
import logging
from celery.signals import worker_ready, worker_shutdown

from jym.config.celery_config import celery_app
from jym.utils.my_logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    logger.info("🚀 Jym worker ready!")
    logger.info(f"📋 Registered tasks: {sorted(t for t in celery_app.tasks if t.startswith('jym.'))}")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    logger.info("🛑 Jym worker shutting down...")


if __name__ == "__main__":
    celery_app.start([
        "worker",
        "--loglevel=info",
        "--queues=conversations,triggers",
        "--concurrency=4",
    ])
