"""
Query Parser

Turns the arguments of a chat command into a DeploymentRequest.
The grammar is positional, not a flag parser:

    <env>
    <env> ext
    <env> <project>
    <env> <project> ext
"""

import json
import logging
from typing import Dict, Optional

from ..common.schemas import DeploymentRequest

logger = logging.getLogger("deploywatch.lookup.parser")

EXTENDED_FLAG = "ext"

COMMAND_HELP: Dict[str, str] = {
    "cho <environment>": "Returns deployed version of all projects in <environment>",
    "cho <environment> ext": "Returns deployed version of all projects in <environment> with extended info",
    "cho <environment> <project>": "Returns deployed version for <project> in <environment>",
    "cho <environment> <project> ext": "Returns deployed version for <project> in <environment> with extended info",
}


class ParseError(Exception):
    """Malformed command; the message is shown to the user as is."""
    pass


def render_help(trigger: str = "cho") -> str:
    """Help text listing the command forms"""
    lines = []
    for usage, description in COMMAND_HELP.items():
        usage = usage.replace("cho", trigger, 1)
        lines.append(f"{usage} - {description}")
    return "\n".join(lines)


class QueryParser:
    """Parses command arguments into a DeploymentRequest."""

    def parse(
        self,
        arguments: str,
        requester: str = "",
        target: str = "",
        raw_text: Optional[str] = None,
    ) -> DeploymentRequest:
        """
        Parse command arguments.

        Args:
            arguments: Text following the trigger word
            requester: User who sent the command
            target: Channel the reply goes to
            raw_text: Full message body, logged with the request

        Returns:
            DeploymentRequest

        Raises:
            ParseError: On any token combination outside the grammar
        """
        tokens = arguments.split()
        data = {
            "user": requester,
            "message": raw_text if raw_text is not None else arguments,
            "target": target,
        }
        error = None

        if len(tokens) == 1:
            data["environment"] = tokens[0]
        elif len(tokens) == 2 and tokens[1] == EXTENDED_FLAG:
            data["environment"] = tokens[0]
            data["extended"] = True
        elif len(tokens) == 2:
            data["environment"] = tokens[0]
            data["project"] = tokens[1]
        elif len(tokens) == 3 and tokens[2] == EXTENDED_FLAG:
            data["environment"] = tokens[0]
            data["project"] = tokens[1]
            data["extended"] = True
        else:
            error = "wrong arguments"

        logger.info(json.dumps(data))

        if error:
            raise ParseError(error)

        return DeploymentRequest(
            environment=data["environment"],
            project=data.get("project"),
            extended=data.get("extended", False),
            requester=requester,
            target=target,
            raw_text=data["message"],
        )
