"""
Lookup - Deployment Record Retrieval

Answers "what is currently deployed where?" from the document store.

Key Components:
- QueryParser: Parses the positional command grammar
- RecordMerger: Fetches and merges an environment's documents
- ResponseFormatter: Compact/extended rendering with plain fallback
- DeploymentQueryService: Orchestrates one query end to end

Pipeline:
1. Parse the command arguments
2. Fetch and merge the environment's documents
3. Check the environment (and project) exist
4. Render and deliver, falling back to plain text
"""

from .query_parser import COMMAND_HELP, ParseError, QueryParser, render_help
from .record_merger import RecordMerger
from .formatter import Attachment, AttachmentField, Rendering, RenderError, ResponseFormatter
from .service import DeliveryError, DeliverySink, DeploymentQueryService, QueryOutcome

__all__ = [
    "COMMAND_HELP",
    "ParseError",
    "QueryParser",
    "render_help",
    "RecordMerger",
    "Attachment",
    "AttachmentField",
    "Rendering",
    "RenderError",
    "ResponseFormatter",
    "DeliveryError",
    "DeliverySink",
    "DeploymentQueryService",
    "QueryOutcome",
]
