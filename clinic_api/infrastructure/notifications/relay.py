"""Redis pub/sub relay that fans notification events out to every instance.

Each API process publishes envelopes on a single shared channel and keeps a
listener subscribed to that same channel. Delivery is best effort: envelopes
published while a subscriber is disconnected are never replayed to it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from redis.asyncio import Redis as AsyncRedis
from redis.backoff import AbstractBackoff
from redis.exceptions import RedisError

from clinic_api.infrastructure.redis_client import create_async_redis, reconnect_backoff

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "notifications"


class RelayMessageType(str, Enum):
    NEW_NOTIFICATION = "new_notification"
    COUNT_UPDATE = "count_update"
    MARK_READ = "mark_read"


@dataclass(frozen=True)
class RelayMessage:
    """Envelope carried over the relay channel."""

    type: RelayMessageType
    tenant_id: str
    user_id: str
    data: Any

    def to_json(self) -> str:
        return json.dumps(
            {
                "type": self.type.value,
                "tenantId": self.tenant_id,
                "userId": self.user_id,
                "data": self.data,
            }
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "RelayMessage":
        """Decode an envelope, raising ``ValueError`` when it is malformed."""

        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise ValueError("Relay envelope must be a JSON object")
        try:
            message_type = RelayMessageType(payload["type"])
            tenant_id = payload["tenantId"]
            user_id = payload["userId"]
        except KeyError as exc:
            raise ValueError(f"Relay envelope is missing '{exc.args[0]}'") from exc
        return cls(
            type=message_type,
            tenant_id=str(tenant_id),
            user_id=str(user_id),
            data=payload.get("data"),
        )


RelayHandler = Callable[[RelayMessage], Awaitable[None]]


class RedisNotificationRelay:
    """Publish envelopes on one connection and listen on another."""

    def __init__(
        self,
        publisher: AsyncRedis,
        subscriber: AsyncRedis,
        *,
        channel: str = DEFAULT_CHANNEL,
        backoff: AbstractBackoff | None = None,
    ) -> None:
        self.channel = channel
        self._publisher = publisher
        self._subscriber = subscriber
        self._backoff = backoff or reconnect_backoff()
        self._handlers: list[RelayHandler] = []
        self._listener: asyncio.Task[None] | None = None
        self._closing = False
        self._subscribed = asyncio.Event()

    @classmethod
    def from_url(cls, url: str, *, channel: str = DEFAULT_CHANNEL) -> "RedisNotificationRelay":
        """Create a relay with dedicated publisher and subscriber clients."""

        return cls(create_async_redis(url), create_async_redis(url), channel=channel)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def on_message(self, handler: RelayHandler) -> None:
        """Register ``handler``; handlers run in registration order."""

        self._handlers.append(handler)

    def off_message(self, handler: RelayHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    async def dispatch(self, message: RelayMessage) -> None:
        """Invoke every handler, isolating failures per handler."""

        for handler in list(self._handlers):
            try:
                await handler(message)
            except Exception:
                logger.exception(
                    "Relay handler %r failed for %s envelope", handler, message.type.value
                )

    async def handle_raw_message(self, raw: str | bytes) -> None:
        try:
            message = RelayMessage.from_json(raw)
        except ValueError:
            logger.error("Dropping undecodable relay payload: %r", raw)
            return
        await self.dispatch(message)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------
    async def publish(self, message: RelayMessage) -> None:
        await self._publisher.publish(self.channel, message.to_json())

    async def publish_new_notification(
        self, tenant_id: str, user_id: str, notification: dict[str, Any]
    ) -> None:
        await self.publish(
            RelayMessage(RelayMessageType.NEW_NOTIFICATION, tenant_id, user_id, notification)
        )

    async def publish_count_update(
        self, tenant_id: str, user_id: str, unread_count: int
    ) -> None:
        await self.publish(
            RelayMessage(
                RelayMessageType.COUNT_UPDATE,
                tenant_id,
                user_id,
                {"unreadCount": unread_count},
            )
        )

    async def publish_mark_read(
        self, tenant_id: str, user_id: str, notification_id: str
    ) -> None:
        await self.publish(
            RelayMessage(
                RelayMessageType.MARK_READ,
                tenant_id,
                user_id,
                {"notificationId": notification_id},
            )
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        """Spawn the subscriber loop on the running event loop."""

        if self._listener is not None:
            return
        self._closing = False
        self._listener = asyncio.create_task(self._listen(), name="notification-relay")

    async def wait_until_subscribed(self, timeout: float | None = None) -> None:
        await asyncio.wait_for(self._subscribed.wait(), timeout)

    async def stop(self) -> None:
        """Stop listening and release both connections."""

        self._closing = True
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.cancel()
            try:
                await listener
            except asyncio.CancelledError:
                pass
        await self._publisher.aclose()
        await self._subscriber.aclose()
        logger.info("Notification relay stopped")

    async def _listen(self) -> None:
        failures = 0
        while not self._closing:
            pubsub = self._subscriber.pubsub()
            try:
                await pubsub.subscribe(self.channel)
                logger.info(
                    "Notification relay %s channel '%s'",
                    "resubscribed to" if failures else "subscribed to",
                    self.channel,
                )
                failures = 0
                self._subscribed.set()
                async for message in pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    await self.handle_raw_message(message["data"])
                reason: object = "subscription stream ended"
            except (RedisError, OSError) as exc:
                reason = exc
            except Exception as exc:
                logger.exception("Unexpected error in notification relay listener")
                reason = exc
            finally:
                self._subscribed.clear()
                await self._close_pubsub(pubsub)

            if self._closing:
                break
            failures += 1
            delay = self._backoff.compute(failures)
            logger.error(
                "Notification relay subscriber disconnected (%s); retrying in %.2fs",
                reason,
                delay,
            )
            await asyncio.sleep(delay)

    @staticmethod
    async def _close_pubsub(pubsub: Any) -> None:
        try:
            await pubsub.aclose()
        except (RedisError, OSError) as exc:
            logger.debug("Ignoring error while closing relay subscription: %s", exc)


__all__ = [
    "DEFAULT_CHANNEL",
    "RedisNotificationRelay",
    "RelayHandler",
    "RelayMessage",
    "RelayMessageType",
]
