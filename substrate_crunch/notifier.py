#!/usr/bin/env python3
"""
Webhook Notifier
Posts crunch summaries to a chat webhook
"""

import asyncio
import functools
import logging

import requests

from .exceptions import NotificationError

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """Delivers text messages as {"text": ...} JSON; a missing URL disables it"""

    def __init__(self, url: str = "", timeout: int = 10):
        self.url = url
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def _post(self, message: str) -> None:
        try:
            response = requests.post(self.url, json={"text": message}, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotificationError(f"Notification to {self.url} failed: {e}") from e
        if not 200 <= response.status_code < 300:
            raise NotificationError(f"Notification to {self.url} rejected with status {response.status_code}")

    async def send(self, message: str) -> None:
        if not self.enabled:
            logger.debug("Notifier disabled, message not sent")
            return
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, functools.partial(self._post, message))
        logger.debug(f"Notification delivered to {self.url}")
