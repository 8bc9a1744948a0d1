from celery import Celery

from livechat.config import get_settings

settings = get_settings()

celery_app = Celery(
    "livechat",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["livechat.tasks.notification_task"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_ignore_result=True,
    task_always_eager=settings.celery_task_always_eager,
)
