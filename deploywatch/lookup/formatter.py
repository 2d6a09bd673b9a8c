"""
Response Formatter

Renders a MergedRecord for a DeploymentRequest. Every rendering has two
forms: a Slack attachment (rich) and a plain-text fallback used when the
attachment cannot be delivered.

Two independent axes:
- compact vs. extended (request.extended)
- single project vs. whole environment (request.project)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..common.schemas import AttributeSet, DeploymentRequest, MergedRecord, ProjectRecord, Topology

logger = logging.getLogger("deploywatch.lookup.formatter")

COLOR = "#FFCA06"
FOOTER = "Based on information from elasticsearch"
TIMESTAMP_KEY = "release_timestamp"
PROJECT_HEADER = "Project " + "-" * 50
ROLE_HEADER = "Role " + "-" * 50
NAME_WIDTH = 25


class RenderError(Exception):
    """The rich rendering could not be produced."""
    pass


def parse_release_timestamp(value: Optional[str]) -> datetime:
    """
    Parse a stored ISO-8601 release timestamp.

    Naive values are taken as UTC.

    Raises:
        RenderError: If the value is missing or malformed
    """
    if not value:
        raise RenderError("missing release timestamp")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise RenderError(f"invalid release timestamp {value!r}: {e}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _display(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S %z")
    return str(value)


@dataclass
class AttachmentField:
    """One labeled field of an attachment"""
    title: str
    value: Any
    short: bool = True

    def to_slack(self) -> Dict[str, Any]:
        return {"title": self.title, "value": _display(self.value), "short": self.short}


@dataclass
class Attachment:
    """Slack message attachment"""
    title: str = ""
    pretext: str = ""
    text: str = ""
    color: str = COLOR
    footer: str = FOOTER
    fields: List[AttachmentField] = field(default_factory=list)

    def to_slack(self) -> Dict[str, Any]:
        """Serialize for the Slack Web API"""
        payload: Dict[str, Any] = {"color": self.color, "footer": self.footer}
        for key in ("title", "pretext", "text"):
            value = getattr(self, key)
            if value:
                payload[key] = value
        if self.fields:
            payload["fields"] = [f.to_slack() for f in self.fields]
        if self.pretext or self.text:
            payload["mrkdwn_in"] = ["pretext", "text"]
        return payload


@dataclass
class Rendering:
    """Rich and plain forms of the same reply"""
    rich: Attachment
    plain: str


class ResponseFormatter:
    """
    Formats merged deployment records.

    Callers must check that the record is non-empty and that the requested
    project exists before rendering.
    """

    def render(
        self,
        request: DeploymentRequest,
        record: MergedRecord,
        plain: Optional[str] = None,
    ) -> Rendering:
        """Build the rich and plain forms for a request; reuses plain when given"""
        if request.extended:
            rich = self.extended(request, record)
        else:
            rich = self.compact(request, record)
        if plain is None:
            plain = self.plain(request, record)
        return Rendering(rich=rich, plain=plain)

    # =========================================================================
    # Compact
    # =========================================================================

    def compact(self, request: DeploymentRequest, record: MergedRecord) -> Attachment:
        """Branch only: one field per project/role, or a code block of lines"""
        attachment = Attachment(pretext=f"*{request.environment}*")

        if request.project:
            project = record[request.project]
            for role, attributes in project.attribute_sets():
                title = request.project if role is None else f"{request.project} ({role})"
                attachment.fields.append(
                    AttachmentField(title=title, value=attributes.branch or "", short=False)
                )
        else:
            lines = []
            for name, project in record.projects.items():
                for role, attributes in project.attribute_sets():
                    label = name if role is None else f"{name}/{role}"
                    lines.append(f"{label.ljust(NAME_WIDTH)} - {attributes.branch or ''}\n")
            attachment.text = "```" + "".join(lines) + "```"

        return attachment

    # =========================================================================
    # Extended
    # =========================================================================

    def extended(self, request: DeploymentRequest, record: MergedRecord) -> Attachment:
        """Every attribute, sorted by key, with the release timestamp parsed"""
        env = request.environment

        if request.project:
            attachment = Attachment(title=f"{env} - {request.project}")
            attachment.fields.extend(self._project_fields(request.project, record[request.project]))
        else:
            attachment = Attachment(title=env)
            for name, project in record.projects.items():
                attachment.fields.append(
                    AttachmentField(title=PROJECT_HEADER, value=name.capitalize(), short=False)
                )
                attachment.fields.extend(self._project_fields(name, project))

        return attachment

    def _project_fields(self, name: str, project: ProjectRecord) -> List[AttachmentField]:
        fields = []
        for role, attributes in project.attribute_sets():
            label = name
            if role is not None:
                label = f"{name}/{role}"
                fields.append(AttachmentField(title=ROLE_HEADER, value=role, short=False))
            fields.extend(self._attribute_fields(label, attributes))
        return fields

    def _attribute_fields(self, label: str, attributes: AttributeSet) -> List[AttachmentField]:
        fields = []
        for key, value in attributes.sorted_items():
            if key == TIMESTAMP_KEY:
                try:
                    value = parse_release_timestamp(value)
                except RenderError as e:
                    logger.warning("skipping release timestamp of %s: %s", label, e)
                    continue
            fields.append(AttachmentField(title=key.capitalize(), value=value, short=True))
        return fields

    # =========================================================================
    # Plain text fallback
    # =========================================================================

    def plain(self, request: DeploymentRequest, record: MergedRecord) -> str:
        """Plain summary from the stored values; never fails"""
        if request.project:
            project = record.projects.get(request.project)
            prefix = f"Environment: {request.environment}, "
            if project is None:
                return prefix.rstrip(", ")
            if project.topology == Topology.FLAT:
                return prefix + self._summary(project.attributes)
            message = f"Environment: {request.environment}\n"
            for role, attributes in project.attribute_sets():
                message += f"Role: {role}\n{self._summary(attributes)}\n"
            return message

        message = f"Environment: {request.environment}\n"
        for name, project in record.projects.items():
            message += f"Project: {name}\n"
            for role, attributes in project.attribute_sets():
                if role is not None:
                    message += f"Role: {role}\n"
                message += f"{self._summary(attributes)}\n"
        return message

    @staticmethod
    def _summary(attributes: AttributeSet) -> str:
        return (
            f"Branch: {attributes.branch or ''}, "
            f"Commit: {attributes.current_revision or ''}, "
            f"Deployer: {attributes.deploy_user or ''}, "
            f"Date: {attributes.release_timestamp or ''}"
        )
