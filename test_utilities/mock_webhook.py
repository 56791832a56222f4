"""Mock webhook notifier for testing without a real chat server."""
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from guild_boss_timer.errors import WebhookDeliveryError
from guild_boss_timer.logger import get_logger

logger = get_logger(__name__)


class MockWebhookNotifier:
    """Records messages instead of posting them; can be told to fail."""

    def __init__(self, fail: bool = False):
        """Initialize the mock notifier."""
        self.fail = fail
        self.posted_messages: List[Dict] = []
        self.attempts = 0
        self._lock = threading.Lock()
        logger.info("Mock webhook notifier initialized (messages will be recorded, not posted)")

    def send(self, webhook_url: str, content: str) -> None:
        """
        Record a notification instead of posting it.

        Raises:
            WebhookDeliveryError: when fail is set
        """
        with self._lock:
            self.attempts += 1
            if self.fail:
                raise WebhookDeliveryError("Mock webhook returned 500", status_code=500)
            self.posted_messages.append({
                'timestamp': datetime.now().isoformat(),
                'message': content,
                'webhook_url': webhook_url,
            })

        print("\n" + "=" * 80)
        print("MOCK WEBHOOK POST (not actually posted):")
        print(f"Message: {content}")
        print("=" * 80 + "\n")

    def get_posted_messages(self) -> List[Dict]:
        with self._lock:
            return self.posted_messages.copy()

    def last_message(self) -> Optional[str]:
        messages = self.get_posted_messages()
        return messages[-1]['message'] if messages else None

    def clear_messages(self) -> None:
        with self._lock:
            self.posted_messages.clear()
