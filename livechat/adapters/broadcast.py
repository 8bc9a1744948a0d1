"""
Real-time broadcast over Redis pub/sub.

Each conversation has its own channel. The socket gateway subscribed to it
drops the frame for ``exclude_actor_id`` so the sender does not get an echo.
"""

from __future__ import annotations

import json
from typing import Any, Optional
from uuid import UUID

import redis

from livechat.config import Settings, get_settings
from livechat.infra.logging_config import get_logger

logger = get_logger("broadcast")


def conversation_channel(namespace: str, conversation_id: UUID) -> str:
    return f"{namespace}:conversation:{conversation_id}"


class RedisBroadcaster:
    """Fire-and-forget ``PUBLISH``; errors propagate to the caller's dispatcher."""

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._redis = redis_client

    def _client(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.Redis.from_url(
                self.settings.redis_url,
                socket_connect_timeout=1,
                socket_timeout=1,
            )
        return self._redis

    def publish(
        self,
        conversation_id: UUID,
        payload: dict[str, Any],
        exclude_actor_id: Optional[UUID] = None,
    ) -> None:
        frame = {
            "payload": payload,
            "exclude_actor_id": str(exclude_actor_id) if exclude_actor_id else None,
        }
        channel = conversation_channel(self.settings.redis_namespace, conversation_id)
        receivers = self._client().publish(channel, json.dumps(frame, default=str))
        logger.debug("Published %s to %s (%s receivers)", payload.get("event"), channel, receivers)
