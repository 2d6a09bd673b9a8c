"""
Bot - Chat Surface

Receives chat commands and delivers deployment replies.

Key Components:
- Handlers: Platform-specific event parsing (Slack)
- SlackDelivery: Posts rich attachments and plain text replies
- server: FastAPI app receiving Slack events
"""

from .delivery import SlackDelivery
from .handlers import SlackHandler, Message

__all__ = [
    "SlackDelivery",
    "SlackHandler",
    "Message",
]
