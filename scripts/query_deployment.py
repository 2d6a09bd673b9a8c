#!/usr/bin/env python3
"""
Deployment Query Script

Runs one deployment query against the configured store and prints the
reply as plain text, without going through Slack.

Usage:
    python scripts/query_deployment.py <environment> [project] [ext]
"""

import sys
import asyncio
import argparse
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


class ConsoleSink:
    """Prints replies instead of posting them"""

    async def send_rich(self, target, attachment):
        payload = attachment.to_slack()
        for key in ("title", "pretext"):
            if payload.get(key):
                print(payload[key])
        if payload.get("text"):
            print(payload["text"].strip("`"))
        for field in payload.get("fields", []):
            print(f"{field['title']}: {field['value']}")

    async def send_plain_text(self, target, text):
        print(text)


async def run(arguments: str) -> int:
    from deploywatch.common.config import load_config, configure_logging
    from deploywatch.common.store_client import ElasticsearchStore
    from deploywatch.lookup import DeploymentQueryService, QueryOutcome

    config = load_config()
    configure_logging(config)

    service = DeploymentQueryService(
        store=ElasticsearchStore(config.store),
        sink=ConsoleSink(),
    )
    try:
        outcome = await service.handle(arguments, requester="cli", target="console")
    finally:
        await service.close()

    return 0 if outcome in (QueryOutcome.DELIVERED, QueryOutcome.FALLBACK) else 1


def main():
    parser = argparse.ArgumentParser(description="Show what is deployed in an environment")
    parser.add_argument("tokens", nargs="+", help="<environment> [project] [ext]")
    args = parser.parse_args()

    from dotenv import load_dotenv
    load_dotenv()

    sys.exit(asyncio.run(run(" ".join(args.tokens))))


if __name__ == "__main__":
    main()
