import asyncio
import json
import logging

import aio_pika
from aio_pika import ExchangeType

from .errors import UpstreamUnavailable
from .events import BOOKING_CONFIRMED, BROADCAST, EXCHANGE_NAME
from .redis_client import redis_client
from .whatsapp import WhatsAppClient

logger = logging.getLogger(__name__)

QUEUE_NAME = "studyspot_notifications"
ROUTING_KEYS = [BOOKING_CONFIRMED, BROADCAST]

IDEMPOTENCY_TTL = 3600
MAX_ATTEMPTS = 3
BACKOFF_SECONDS = 1.0


def processed_key(event_id: str) -> str:
    return f"processed_event:{event_id}"


async def send_with_retry(send, *, attempts: int = MAX_ATTEMPTS, backoff: float = BACKOFF_SECONDS) -> bool:
    for attempt in range(1, attempts + 1):
        try:
            await send()
            return True
        except UpstreamUnavailable as e:
            if attempt == attempts:
                logger.error("notification dropped after %d attempts: %s", attempts, e)
                return False
            delay = backoff * (2 ** (attempt - 1))
            logger.warning("notification attempt %d failed (%s), retrying in %.1fs", attempt, e, delay)
            await asyncio.sleep(delay)
    return False


async def process_payload(payload: dict, *, redis=redis_client, whatsapp: WhatsAppClient | None = None, backoff: float = BACKOFF_SECONDS) -> bool:
    event_id = payload.get("event_id")
    event_type = payload.get("event_type")
    data = payload.get("data") or {}

    if not event_id or event_type not in ROUTING_KEYS:
        return False

    # idempotent handling
    pk = processed_key(event_id)
    if await redis.get(pk):
        return False
    await redis.set(pk, "1", ex=IDEMPOTENCY_TTL)

    whatsapp = whatsapp or WhatsAppClient()

    if event_type == BOOKING_CONFIRMED:
        if not data.get("booking_id") or not data.get("customer_phone"):
            return False
        logger.info("sending booking confirmation %s", data["booking_id"])
        return await send_with_retry(lambda: whatsapp.send_booking_confirmation(data), backoff=backoff)

    phone = data.get("phone")
    message = data.get("message")
    if not phone or not message:
        return False
    logger.info("sending broadcast to %s", phone)
    return await send_with_retry(lambda: whatsapp.send_broadcast(phone, message), backoff=backoff)


async def handle_message(message: aio_pika.IncomingMessage):
    async with message.process(requeue=False):
        try:
            payload = json.loads(message.body.decode("utf-8"))
        except ValueError:
            logger.warning("discarding malformed notification message")
            return

        await process_payload(payload)


async def start_consumer(rabbit_url: str):
    conn = await aio_pika.connect_robust(rabbit_url)
    channel = await conn.channel()
    await channel.set_qos(prefetch_count=20)

    exchange = await channel.declare_exchange(EXCHANGE_NAME, ExchangeType.TOPIC, durable=True)
    queue = await channel.declare_queue(QUEUE_NAME, durable=True)

    for rk in ROUTING_KEYS:
        await queue.bind(exchange, routing_key=rk)

    await queue.consume(handle_message)
    logger.info("notification consumer started")
    return conn
