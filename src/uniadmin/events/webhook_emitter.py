"""HMAC-SHA256 signed webhook delivery of hierarchy events."""

import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone

import httpx

from uniadmin.models.webhook import WebhookEnvelope
from uniadmin.services.id_generator import EVENT_PREFIX, generate_id

from .hierarchy_events import HierarchyEvent
from .webhook_config import WebhookRegistry, WebhookSubscription

logger = logging.getLogger(__name__)

SOURCE_SYSTEM = "uniadmin-api"
MAX_ATTEMPTS = 3


def sign_payload(body: bytes, secret: str) -> str:
    """Compute HMAC-SHA256 signature over the raw JSON body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def build_envelope(event_type: str, payload: dict, source_system: str = SOURCE_SYSTEM) -> WebhookEnvelope:
    """Build an unsigned envelope. Each subscriber gets its own signature."""
    return WebhookEnvelope(
        schema_version="1.0",
        event_type=event_type,
        event_id=generate_id(EVENT_PREFIX),
        occurred_at=datetime.now(timezone.utc),
        source_system=source_system,
        payload=payload,
    )


async def deliver(
    envelope: WebhookEnvelope,
    sub: WebhookSubscription,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """POST a signed envelope to one subscriber, retrying 5xx and network errors."""
    body_dict = envelope.model_dump(mode="json", exclude={"signature"})
    unsigned = json.dumps(body_dict, separators=(",", ":")).encode("utf-8")
    signature = sign_payload(unsigned, sub.secret)
    body_dict["signature"] = signature
    signed_body = json.dumps(body_dict, separators=(",", ":")).encode("utf-8")

    headers = {
        "Content-Type": "application/json",
        "X-UniAdmin-Signature": signature,
        "X-UniAdmin-Event": envelope.event_type,
    }

    for attempt in range(MAX_ATTEMPTS):
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
                resp = await client.post(sub.url, content=signed_body, headers=headers)
            if resp.status_code < 300:
                return {"url": sub.url, "status": resp.status_code, "error": None}
            if resp.status_code >= 500 and attempt < MAX_ATTEMPTS - 1:
                continue
            logger.warning("Webhook %s rejected %s: HTTP %d", sub.url, envelope.event_type, resp.status_code)
            return {"url": sub.url, "status": resp.status_code, "error": f"HTTP {resp.status_code}"}
        except httpx.HTTPError as exc:
            if attempt < MAX_ATTEMPTS - 1:
                continue
            logger.warning("Webhook delivery failed to %s: %s", sub.url, exc)
            return {"url": sub.url, "status": None, "error": str(exc)}

    return {"url": sub.url, "status": None, "error": "max retries exceeded"}


class WebhookForwarder:
    """Dispatcher listener forwarding hierarchy events to every matching subscriber."""

    def __init__(self, registry: WebhookRegistry, transport: httpx.AsyncBaseTransport | None = None):
        self.registry = registry
        self.transport = transport

    async def __call__(self, event: HierarchyEvent) -> list[dict]:
        subscribers = self.registry.get_subscribers(event.event_type)
        if not subscribers:
            return []
        envelope = build_envelope(event.event_type, event.to_dict())
        return [await deliver(envelope, sub, self.transport) for sub in subscribers]
