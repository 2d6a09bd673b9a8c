"""
Chat Handlers

Handlers for chat platforms. Each handler converts platform-specific events
to a common Message format and extracts the bot command from it.

Available Handlers:
- SlackHandler: Slack Events API callbacks
"""

from .base import BaseHandler, Message
from .slack import SlackHandler

__all__ = [
    "BaseHandler",
    "Message",
    "SlackHandler",
]
