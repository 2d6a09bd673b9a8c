"""
Slack Delivery

Posts bot replies through the Slack Web API (chat.postMessage).
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..lookup.formatter import Attachment
from ..lookup.service import DeliveryError

logger = logging.getLogger("deploywatch.bot.delivery")

SLACK_API_URL = "https://slack.com/api"


class SlackDelivery:
    """
    Delivery sink backed by chat.postMessage.

    Rich sends raise DeliveryError so the caller can fall back to plain
    text; plain sends are the last resort and only log their failures.
    """

    def __init__(
        self,
        bot_token: str,
        timeout: float = 10.0,
        base_url: str = SLACK_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Slack delivery.

        Args:
            bot_token: Bot user OAuth token (xoxb-...)
            timeout: Request timeout in seconds
            base_url: Slack Web API base URL
            transport: Optional httpx transport (used by tests)
        """
        self._bot_token = bot_token
        self._timeout = timeout
        self._base_url = base_url
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                headers={"Authorization": f"Bearer {self._bot_token}"},
                transport=self._transport,
            )
        return self._client

    async def _post_message(self, payload: Dict[str, Any]) -> None:
        client = self._ensure_client()
        try:
            response = await client.post("/chat.postMessage", json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DeliveryError(f"chat.postMessage failed: {e}") from e

        if not isinstance(data, dict):
            raise DeliveryError(f"chat.postMessage returned {type(data).__name__}, expected an object")
        if not data.get("ok"):
            raise DeliveryError(f"chat.postMessage rejected: {data.get('error', 'unknown_error')}")

    async def send_rich(self, target: str, attachment: Attachment) -> None:
        """Post an attachment; raises DeliveryError on failure"""
        await self._post_message({
            "channel": target,
            "text": "",
            "attachments": [attachment.to_slack()],
        })

    async def send_plain_text(self, target: str, text: str) -> None:
        """Post plain text; failures are logged"""
        try:
            await self._post_message({"channel": target, "text": text})
        except DeliveryError as e:
            logger.error("can't send reply to %s: %s", target, e)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
