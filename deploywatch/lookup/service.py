"""
Deployment Query Service

Runs one chat query end to end:

    parse -> fetch -> merge -> validate -> render -> deliver

Short-circuits reply with plain text. The only fallback is the plain-text
rendering, sent when the rich attachment cannot be rendered or delivered.
"""

import logging
from enum import Enum
from typing import Optional, Protocol

from ..common.store_client import RecordStore
from .formatter import Attachment, RenderError, ResponseFormatter
from .query_parser import ParseError, QueryParser
from .record_merger import RecordMerger

logger = logging.getLogger("deploywatch.lookup.service")


class DeliveryError(Exception):
    """The rich reply could not be delivered."""
    pass


class DeliverySink(Protocol):
    """Where replies go (Slack, console, ...)."""

    async def send_rich(self, target: str, attachment: Attachment) -> None:
        ...

    async def send_plain_text(self, target: str, text: str) -> None:
        ...


class QueryOutcome(str, Enum):
    """How a query ended"""
    PARSE_ERROR = "parse_error"
    NOT_FOUND = "not_found"
    PROJECT_MISSING = "project_missing"
    DELIVERED = "delivered"
    FALLBACK = "fallback"


class DeploymentQueryService:
    """
    Answers "what is deployed where?" queries.

    Holds no per-query state; concurrent queries only share the store,
    whose lifecycle this service owns.
    """

    def __init__(
        self,
        store: RecordStore,
        sink: DeliverySink,
        parser: Optional[QueryParser] = None,
        formatter: Optional[ResponseFormatter] = None,
    ):
        """
        Initialize service.

        Args:
            store: Source of raw deployment documents
            sink: Reply delivery
            parser: Command parser (default QueryParser)
            formatter: Reply formatter (default ResponseFormatter)
        """
        self._store = store
        self._sink = sink
        self._parser = parser or QueryParser()
        self._merger = RecordMerger(store)
        self._formatter = formatter or ResponseFormatter()

    async def handle(
        self,
        arguments: str,
        requester: str = "",
        target: str = "",
        raw_text: Optional[str] = None,
    ) -> QueryOutcome:
        """
        Answer one query.

        Args:
            arguments: Text following the trigger word
            requester: User who asked
            target: Channel to reply to
            raw_text: Full message body, for logging

        Returns:
            QueryOutcome describing which path the query took
        """
        try:
            request = self._parser.parse(arguments, requester=requester, target=target, raw_text=raw_text)
        except ParseError as e:
            await self._sink.send_plain_text(target, str(e))
            return QueryOutcome.PARSE_ERROR

        record = await self._merger.collect(request.environment)

        if record.is_empty:
            await self._sink.send_plain_text(
                target, f"nothing found for environment `{request.environment}`"
            )
            return QueryOutcome.NOT_FOUND

        if request.project and request.project not in record:
            await self._sink.send_plain_text(target, f"no entry for {request.project} found")
            return QueryOutcome.PROJECT_MISSING

        plain = self._formatter.plain(request, record)
        try:
            rendering = self._formatter.render(request, record, plain=plain)
            await self._sink.send_rich(target, rendering.rich)
        except (RenderError, DeliveryError) as e:
            logger.error("can't send slack message due: %s", e)
            await self._sink.send_plain_text(target, plain)
            return QueryOutcome.FALLBACK
        except Exception as e:
            logger.exception("unexpected error sending slack message: %s", e)
            await self._sink.send_plain_text(target, plain)
            return QueryOutcome.FALLBACK

        return QueryOutcome.DELIVERED

    async def close(self) -> None:
        """Release the store connection"""
        close = getattr(self._store, "close", None)
        if close is not None:
            await close()
