"""
Slack Handler

Handles Slack Events API callbacks and converts them to Messages.
"""

import hmac
import hashlib
import re
import time
from typing import Optional, Dict, Any

from .base import BaseHandler, Message

# Slack user mention format: <@U12345678> or <@U12345678|name>
_MENTION_RE = re.compile(r'<@([UW][A-Z0-9]+)(\|[^>]*)?>')


class SlackHandler(BaseHandler):
    """
    Handler for Slack Events API webhooks.

    Processes:
    - app_mention events (the bot is mentioned in a channel)
    - message events in direct messages with the bot

    Ignores:
    - Bot messages (including the bot's own replies)
    - Edits, deletions and channel housekeeping subtypes
    """

    def __init__(self, signing_secret: str = "", trigger: str = "cho"):
        """
        Initialize Slack handler.

        Args:
            signing_secret: Slack signing secret for verification
            trigger: Command word the bot answers to
        """
        super().__init__("slack", trigger=trigger)
        self._signing_secret = signing_secret

    async def parse_event(self, raw_data: Dict[str, Any]) -> Optional[Message]:
        """
        Parse Slack event into Message.

        Args:
            raw_data: Raw Slack event data

        Returns:
            Message object or None if event should be ignored
        """
        if raw_data.get("type") != "event_callback":
            return None

        event = raw_data.get("event", {})
        event_type = event.get("type", "")

        # Skip bot messages
        if event.get("bot_id") or event.get("subtype") == "bot_message":
            return None

        # Edits, deletions, joins, ...
        if event.get("subtype"):
            return None

        if event_type == "app_mention":
            return self._build_message(event, addressed=True)

        if event_type == "message":
            return self._build_message(event, addressed=event.get("channel_type") == "im")

        return None

    def _build_message(self, event: Dict[str, Any], addressed: bool) -> Message:
        return Message(
            text=event.get("text", ""),
            user=event.get("user", ""),
            channel=event.get("channel", ""),
            source="slack",
            timestamp=event.get("ts", ""),
            thread_ts=event.get("thread_ts"),
            channel_type=event.get("channel_type"),
            is_bot=False,
            addressed=addressed,
            raw_data=event,
        )

    def command_text(self, message: Message) -> str:
        """Message text with the leading bot mention removed"""
        text = message.text.strip()
        match = _MENTION_RE.match(text)
        if match:
            text = text[match.end():].lstrip(" :,")
        return text.strip()

    def verify_signature(
        self,
        body: bytes,
        signature: str,
        timestamp: str
    ) -> bool:
        """
        Verify Slack request signature.

        Args:
            body: Raw request body
            signature: X-Slack-Signature header
            timestamp: X-Slack-Request-Timestamp header

        Returns:
            True if signature is valid
        """
        if not self._signing_secret:
            # Skip verification if no secret configured
            return True

        if not signature or not timestamp:
            return False

        # Check timestamp is recent (within 5 minutes)
        try:
            ts = int(timestamp)
            if abs(time.time() - ts) > 300:
                return False
        except ValueError:
            return False

        sig_basestring = f"v0:{timestamp}:{body.decode('utf-8')}"
        expected_sig = "v0=" + hmac.new(
            self._signing_secret.encode('utf-8'),
            sig_basestring.encode('utf-8'),
            hashlib.sha256
        ).hexdigest()

        return hmac.compare_digest(expected_sig, signature)

    def is_url_verification(self, raw_data: Dict[str, Any]) -> bool:
        """Check if request is URL verification"""
        return raw_data.get("type") == "url_verification"

    def get_challenge(self, raw_data: Dict[str, Any]) -> Optional[str]:
        """Get challenge for URL verification"""
        if self.is_url_verification(raw_data):
            return raw_data.get("challenge")
        return None
