"""
Base Handler

Abstract base class for chat-platform event handlers.
Provides a common interface for turning events into commands for the bot.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any


@dataclass
class Message:
    """
    Common message format for all chat sources.

    This is the standardized format the bot works with,
    regardless of the platform that delivered it.
    """
    text: str
    user: str
    channel: str
    source: str  # "slack", ...
    timestamp: str
    thread_ts: Optional[str] = None
    channel_type: Optional[str] = None  # "im", "channel", ...
    is_bot: bool = False
    addressed: bool = False  # mentioned the bot or sent it a direct message
    raw_data: Optional[Dict[str, Any]] = None

    @property
    def is_valid(self) -> bool:
        """Check if message has minimum required fields"""
        return bool(self.text and self.text.strip())


class BaseHandler(ABC):
    """
    Abstract base class for chat handlers.

    Each handler must implement:
    - parse_event: Convert raw event to Message
    - verify_signature: Verify webhook signature (if applicable)
    """

    def __init__(self, source_name: str, trigger: str = "cho"):
        """
        Initialize handler.

        Args:
            source_name: Name of the source (e.g., "slack")
            trigger: Command word the bot answers to
        """
        self.source_name = source_name
        self.trigger = trigger
        self._command_re = re.compile(rf"^{re.escape(trigger)}(\s+)(.+)$", re.IGNORECASE)

    @abstractmethod
    async def parse_event(self, raw_data: Dict[str, Any]) -> Optional[Message]:
        """
        Parse raw event data into a Message.

        Args:
            raw_data: Raw event data from the source

        Returns:
            Message object or None if event should be ignored
        """
        pass

    @abstractmethod
    def verify_signature(
        self,
        body: bytes,
        signature: str,
        timestamp: str
    ) -> bool:
        """
        Verify the webhook signature.

        Args:
            body: Raw request body
            signature: Signature from headers
            timestamp: Timestamp from headers

        Returns:
            True if signature is valid
        """
        pass

    def should_process(self, message: Message) -> bool:
        """
        Check if message should be processed.

        Only non-empty messages from people that address the bot count.
        """
        if not message.is_valid:
            return False

        if message.is_bot:
            return False

        return message.addressed

    def command_text(self, message: Message) -> str:
        """Message text without platform decoration. Override per source."""
        return message.text.strip()

    def extract_arguments(self, message: Message) -> Optional[str]:
        """
        Extract the command arguments following the trigger word.

        Returns:
            Argument string, or None if the message is not a command
        """
        match = self._command_re.search(self.command_text(message))
        if not match:
            return None
        return match.group(2)

    def is_help_request(self, message: Message) -> bool:
        """Check for a bare help request"""
        text = self.command_text(message).lower()
        return text in ("help", f"{self.trigger.lower()} help")
