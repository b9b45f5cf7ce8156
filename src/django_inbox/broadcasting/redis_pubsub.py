"""Redis pub/sub broadcaster.

Publishes a JSON envelope ``{"event", "channel", "data"}`` with ``PUBLISH``.
A websocket gateway subscribed to Redis forwards it to connected clients
after checking ``broadcasting/auth``.
"""

import json
import logging
from functools import lru_cache

import redis
from django.core.serializers.json import DjangoJSONEncoder
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from ..conf import get_setting
from ..exceptions import BroadcastError
from .base import BaseBroadcaster, PublishResult

logger = logging.getLogger(__name__)


@lru_cache
def get_redis_client(url: str, timeout: float) -> redis.Redis:
    """Cached client per (url, timeout).

    The socket timeout bounds how long a slow transport can hold up the
    request that triggered the publish.
    """
    client = redis.Redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
        health_check_interval=30,
    )
    logger.info(f"Redis broadcaster initialized: {url} (timeout={timeout}s)")
    return client


class RedisBroadcaster(BaseBroadcaster):
    backend_name = "redis"

    def __init__(self, url: str = None, timeout: float = None, client: redis.Redis = None):
        self.url = url or get_setting("REDIS_URL")
        self.timeout = float(timeout if timeout is not None else get_setting("BROADCAST_TIMEOUT"))
        self._client = client

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = get_redis_client(self.url, self.timeout)
        return self._client

    def publish(self, channel: str, event: str, payload: dict) -> PublishResult:
        json_message = json.dumps(self.envelope(channel, event, payload), cls=DjangoJSONEncoder)

        try:
            receivers = self.client.publish(channel, json_message)
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise BroadcastError(channel, f"Redis unavailable: {e}", original_error=e) from e
        except RedisError as e:
            raise BroadcastError(channel, f"Redis error: {e}", original_error=e) from e

        logger.debug(f"Published {event} to '{channel}' ({receivers} receivers): {json_message[:100]}")
        return PublishResult.ok(
            backend=self.backend_name, channel=channel, event=event, receivers=receivers
        )
