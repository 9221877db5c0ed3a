import logging

from .events import BOOKING_CONFIRMED, BROADCAST, booking_data, build_event, to_json
from .publisher import RabbitPublisher, publisher

logger = logging.getLogger(__name__)


class Notifier:
    """Queues WhatsApp messages on the event bus; delivery happens in the notification consumer."""

    def __init__(self, bus: RabbitPublisher = publisher):
        self.bus = bus

    async def booking_confirmed(self, booking) -> bool:
        event = build_event(BOOKING_CONFIRMED, booking_data(booking))
        queued = await self.bus.publish(BOOKING_CONFIRMED, to_json(event))
        if not queued:
            logger.warning("confirmation for %s not queued", booking.id)
        return queued

    async def broadcast(self, phone: str, message: str) -> bool:
        event = build_event(BROADCAST, {"phone": phone, "message": message})
        return await self.bus.publish(BROADCAST, to_json(event))


notifier = Notifier()
