# gitguard/infrastructure/messaging/rabbitmq_dispatcher.py

import json
import uuid
from typing import Any, Dict, Optional

import aio_pika

from gitguard.core.context import correlation_id_ctx


class RabbitMQNotificationDispatcher:
    """
    Publishes notifications to a durable topic exchange for a delivery worker (push, email).
    Routing key: notification.<user_id>.
    """

    def __init__(self, url: str, exchange_name: str = "gitguard.notifications") -> None:
        self._url = url
        self._exchange_name = exchange_name
        self._connection: Optional[aio_pika.abc.AbstractRobustConnection] = None
        self._channel: Optional[aio_pika.abc.AbstractChannel] = None
        self._exchange: Optional[aio_pika.abc.AbstractExchange] = None

    async def connect(self) -> None:
        self._connection = await aio_pika.connect_robust(self._url)
        self._channel = await self._connection.channel()
        await self._channel.set_qos(prefetch_count=10)
        self._exchange = await self._channel.declare_exchange(
            self._exchange_name,
            aio_pika.ExchangeType.TOPIC,
            durable=True,
        )

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
        self._connection = self._channel = self._exchange = None

    async def notify(
        self,
        user_id: str,
        title: str,
        body: str,
        metadata: Dict[str, Any],
    ) -> None:
        if self._exchange is None:
            await self.connect()

        message = {
            "user_id": user_id,
            "title": title,
            "body": body,
            "metadata": metadata,
            "correlation_id": correlation_id_ctx.get(),
        }
        msg = aio_pika.Message(
            body=json.dumps(message, default=str).encode(),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            headers={"idempotency_key": str(uuid.uuid4())},
        )
        await self._exchange.publish(msg, routing_key=f"notification.{user_id}")
