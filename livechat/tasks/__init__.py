# Import celery app first
from livechat.infra.celery_app import celery_app

# Initialize logging configuration for Celery workers
from livechat.infra.logging_config import LoggingConfig
from livechat.tasks.notification_task import dispatch_chat_notification_task

LoggingConfig()

__all__ = [
    "celery_app",
    "dispatch_chat_notification_task",
]
