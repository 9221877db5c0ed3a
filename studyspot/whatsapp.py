import logging

import httpx

from .config import WHATSAPP_API_BASE, WHATSAPP_API_TOKEN, WHATSAPP_PHONE_ID
from .errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
CONFIRMATION_TEMPLATE = "booking_confirmation"
BROADCAST_TEMPLATE = "custom_alert"


def _text(value) -> dict:
    return {"type": "text", "text": str(value)}


def confirmation_payload(data: dict, template: str = CONFIRMATION_TEMPLATE) -> dict:
    return {
        "messaging_product": "whatsapp",
        "to": data["customer_phone"],
        "type": "template",
        "template": {
            "name": template,
            "language": {"code": "en_US"},
            "components": [
                {
                    "type": "body",
                    "parameters": [
                        _text(data["customer_name"]),
                        _text(data["booking_id"]),
                        _text(data["start_date"]),
                        _text(data["amount"]),
                    ],
                }
            ],
        },
    }


def broadcast_payload(phone: str, message: str) -> dict:
    return {
        "messaging_product": "whatsapp",
        "to": phone,
        "type": "template",
        "template": {
            "name": BROADCAST_TEMPLATE,
            "language": {"code": "en_US"},
            "components": [{"type": "body", "parameters": [_text(message)]}],
        },
    }


class WhatsAppClient:
    def __init__(
        self,
        token: str | None = WHATSAPP_API_TOKEN,
        phone_id: str | None = WHATSAPP_PHONE_ID,
        base_url: str = WHATSAPP_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.phone_id = phone_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def send(self, payload: dict) -> dict:
        if not self.token or not self.phone_id:
            raise UpstreamUnavailable("Missing WhatsApp credentials")

        url = f"{self.base_url}/{self.phone_id}/messages"
        headers = {"Authorization": f"Bearer {self.token}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(url, json=payload, headers=headers)
                resp.raise_for_status()
                return resp.json() if resp.content else {}
        except httpx.TimeoutException:
            raise UpstreamUnavailable(f"Timeout calling WhatsApp API for {payload.get('to')}")
        except httpx.HTTPStatusError as e:
            logger.error("WhatsApp API error %s: %s", e.response.status_code, e.response.text)
            raise UpstreamUnavailable(f"WhatsApp API returned {e.response.status_code}")
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"WhatsApp API unreachable: {e}")

    async def send_booking_confirmation(self, data: dict) -> dict:
        return await self.send(confirmation_payload(data))

    async def send_broadcast(self, phone: str, message: str) -> dict:
        return await self.send(broadcast_payload(phone, message))
