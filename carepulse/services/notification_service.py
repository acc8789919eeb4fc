import logging
from typing import Optional

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)


class NotificationService:
    """Sends SMS notifications through an HTTP webhook.

    Delivery is best effort: failures are logged and never raised.
    """

    def __init__(self, webhook_url: Optional[str] = None, timeout: Optional[float] = None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.SMS_WEBHOOK_URL
        self.timeout = timeout or settings.SMS_TIMEOUT_SECONDS

    async def send_sms(self, user_id: str, phone: str, content: str) -> bool:
        if not self.webhook_url:
            logger.info(f"SMS webhook not configured, skipping notification for user {user_id}")
            return False

        payload = {"userId": user_id, "to": phone, "content": content}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to send SMS notification to user {user_id}: {e}")
            return False

        logger.info(f"SMS notification sent to user {user_id}")
        return True
