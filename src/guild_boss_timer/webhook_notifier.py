"""Deliver notifications to a chat webhook."""
import json
from typing import Optional

import requests

from .errors import WebhookDeliveryError
from .logger import get_logger

logger = get_logger(__name__)


def _mask_webhook(url: str) -> str:
    """Return a safe string for logging (avoid exposing full webhook URL)."""
    if not url or not isinstance(url, str):
        return "(empty)"
    s = url.strip()
    if len(s) <= 20:
        return "****"
    return f"{s[:30]}...{s[-4:]}" if len(s) > 40 else f"{s[:15]}...{s[-4:]}"


class WebhookNotifier:
    """Posts {"content": ...} payloads to a webhook URL."""

    def __init__(self, timeout: float = 10, beacon_fallback: bool = True,
                 session: Optional[requests.Session] = None):
        """
        Initialize the notifier.

        Args:
            timeout: Seconds to wait for the webhook to answer
            beacon_fallback: Try a fire-and-forget re-send when the normal post fails
            session: requests session to use (a fresh one by default)
        """
        self.timeout = timeout
        self.beacon_fallback = beacon_fallback
        self.session = session or requests.Session()

    def send(self, webhook_url: str, content: str) -> None:
        """
        Deliver content to the webhook.

        Raises:
            WebhookDeliveryError: both the post and the beacon fallback failed
        """
        if not webhook_url:
            raise WebhookDeliveryError("No webhook URL configured")

        logger.info(f"[WEBHOOK] Sending to webhook {_mask_webhook(webhook_url)}")
        logger.debug(f"[WEBHOOK] Message preview: {content[:80]}...")
        try:
            response = self.session.post(webhook_url, json={'content': content}, timeout=self.timeout)
            response.raise_for_status()
            logger.info(f"[WEBHOOK] Message sent successfully to webhook {_mask_webhook(webhook_url)}")
            return
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            error = WebhookDeliveryError(f"Webhook returned {status}", status_code=status)
        except requests.exceptions.RequestException as e:
            error = WebhookDeliveryError(f"Webhook request failed: {e}")

        logger.warning(f"[WEBHOOK] Delivery failed: {error}")
        if self.beacon_fallback and self._send_beacon(webhook_url, content):
            logger.info(f"[WEBHOOK] Beacon fallback dispatched to {_mask_webhook(webhook_url)}")
            return
        raise error

    def _send_beacon(self, webhook_url: str, content: str) -> bool:
        """
        One-way best-effort send. Counts as sent once the request went out,
        whatever the response.
        """
        payload = json.dumps({'content': content}).encode('utf-8')
        try:
            response = self.session.post(
                webhook_url,
                data=payload,
                headers={'Content-Type': 'application/json'},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"[WEBHOOK] Beacon fallback failed: {e}")
            return False
        if not response.ok:
            logger.warning(f"[WEBHOOK] Beacon fallback answered {response.status_code}, counted as sent")
        return True
