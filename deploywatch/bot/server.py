"""
DeployWatch Server

FastAPI server receiving Slack events and answering deployment queries.

Endpoints:
- POST /slack/events: Slack Events API endpoint
- GET /health: Health check
- GET /help: Command forms

Pipeline:
1. Receive webhook event
2. Verify signature and parse with the Slack handler
3. Extract the command arguments following the trigger word
4. Run the query in the background and reply in the channel
"""

import json
import logging
from typing import Optional
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, HTTPException, Header, BackgroundTasks
from fastapi.responses import JSONResponse

from ..common.config import load_config, configure_logging, DeployWatchConfig
from ..common.store_client import ElasticsearchStore
from ..lookup.query_parser import COMMAND_HELP, render_help
from ..lookup.service import DeploymentQueryService
from .delivery import SlackDelivery
from .handlers import SlackHandler, Message

logger = logging.getLogger("deploywatch.bot.server")

# Global state
config: Optional[DeployWatchConfig] = None
service: Optional[DeploymentQueryService] = None
delivery: Optional[SlackDelivery] = None
store: Optional[ElasticsearchStore] = None
slack_handler: Optional[SlackHandler] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup, release them on shutdown"""
    global config, service, delivery, store, slack_handler

    load_dotenv()
    config = load_config()
    configure_logging(config)
    logger.info("Starting up (store: %s, index: %s)", config.store.url, config.store.index)

    store = ElasticsearchStore(config.store)
    delivery = SlackDelivery(bot_token=config.slack.bot_token)
    service = DeploymentQueryService(store=store, sink=delivery)
    slack_handler = SlackHandler(
        signing_secret=config.slack.signing_secret,
        trigger=config.slack.trigger,
    )

    if not config.slack.signing_secret:
        logger.warning("No Slack signing secret configured, signatures are not verified")

    logger.info("Ready to receive events")

    yield

    logger.info("Shutting down...")
    await service.close()
    await delivery.close()


app = FastAPI(
    title="DeployWatch",
    description="Answers what is currently deployed where",
    version="0.1.0",
    lifespan=lifespan
)


# =============================================================================
# Background Tasks
# =============================================================================

async def process_message(message: Message):
    """Answer a help request or run a deployment query for a message"""
    if not service or not slack_handler or not delivery:
        logger.error("Not initialized, skipping message")
        return

    if slack_handler.is_help_request(message):
        await delivery.send_plain_text(message.channel, render_help(slack_handler.trigger))
        return

    arguments = slack_handler.extract_arguments(message)
    if arguments is None:
        return

    outcome = await service.handle(
        arguments,
        requester=message.user,
        target=message.channel,
        raw_text=message.text,
    )
    logger.info("Query %r from %s: %s", arguments, message.user, outcome.value)


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "deploywatch",
        "initialized": service is not None,
        "store": store.endpoint if store else None,
        "index": store.index if store else None,
    }


@app.get("/help")
async def help_text():
    """Command forms understood by the bot"""
    trigger = slack_handler.trigger if slack_handler else "cho"
    return {
        "commands": {
            usage.replace("cho", trigger, 1): description
            for usage, description in COMMAND_HELP.items()
        }
    }


@app.post("/slack/events")
async def slack_events(
    request: Request,
    background_tasks: BackgroundTasks,
    x_slack_signature: Optional[str] = Header(None),
    x_slack_request_timestamp: Optional[str] = Header(None)
):
    """
    Handle Slack webhook events.

    This is the main entry point for Slack integration.
    """
    if not slack_handler:
        raise HTTPException(status_code=503, detail="Handler not initialized")

    body = await request.body()

    if not slack_handler.verify_signature(
        body,
        x_slack_signature or "",
        x_slack_request_timestamp or ""
    ):
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    # Handle URL verification challenge
    if slack_handler.is_url_verification(data):
        return JSONResponse({"challenge": slack_handler.get_challenge(data)})

    # Slack retries unacknowledged events; the first delivery already ran
    if request.headers.get("x-slack-retry-num"):
        return JSONResponse({"ok": True})

    message = await slack_handler.parse_event(data)

    if message and slack_handler.should_process(message):
        # Process in background (don't block response)
        background_tasks.add_task(process_message, message)

    return JSONResponse({"ok": True})


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the DeployWatch server"""
    import uvicorn

    load_dotenv()
    config = load_config()
    configure_logging(config)
    port = config.slack.port

    logger.info("Starting server on port %s", port)
    uvicorn.run(
        "deploywatch.bot.server:app",
        host="0.0.0.0",
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
