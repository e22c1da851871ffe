"""Celery app exposing the rating message handler on a queue."""

from typing import Any

from celery import Celery

from .core.config import get_settings
from .services.rating.worker import handle_message

settings = get_settings()

# Create Celery app
app = Celery(
    "ratebook",
    broker=settings.broker_url,
    backend=settings.result_backend_url,
)

# Celery configuration
app.conf.update(
    # Task routing
    task_routes={
        "ratebook.rating.handle_message": {"queue": "rating"},
    },
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Calculations are short; fail fast instead of piling up
    worker_prefetch_multiplier=1,
    task_time_limit=60,
    task_soft_time_limit=50,
)


@app.task(name="ratebook.rating.handle_message")
def handle_rating_message(message: dict[str, Any]) -> dict[str, Any]:
    """Run one rating request message; always returns a response message."""
    return handle_message(message)


if __name__ == "__main__":
    app.start()
