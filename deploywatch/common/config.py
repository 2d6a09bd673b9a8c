"""
Configuration Management for DeployWatch

Loads configuration from ~/.deploywatch/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("deploywatch.config")

# Default config paths
CONFIG_DIR = Path.home() / ".deploywatch"
CONFIG_PATH = CONFIG_DIR / "config.json"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class StoreConfig:
    """Elasticsearch document store configuration"""
    host: str = "127.0.0.1"
    port: int = 9200
    index: str = "capistrano"
    log: bool = False  # log every store request/response
    timeout: float = 10.0

    @property
    def url(self) -> str:
        """Base URL of the store, scheme included"""
        if "://" in self.host:
            return f"{self.host.rstrip('/')}:{self.port}"
        return f"http://{self.host}:{self.port}"


@dataclass
class SlackConfig:
    """Slack bot configuration"""
    bot_token: str = ""
    signing_secret: str = ""
    port: int = 8080
    trigger: str = "cho"


@dataclass
class DeployWatchConfig:
    """Main DeployWatch configuration"""
    store: StoreConfig = field(default_factory=StoreConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)
    log_level: str = "INFO"
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _parse_store_config(data: dict) -> StoreConfig:
    """Parse store section from config dict"""
    store_data = data.get("store", {})
    return StoreConfig(
        host=store_data.get("host", "127.0.0.1"),
        port=int(store_data.get("port", 9200)),
        index=store_data.get("index", "capistrano"),
        log=_parse_bool(store_data.get("log", False)),
        timeout=float(store_data.get("timeout", 10.0)),
    )


def _parse_slack_config(data: dict) -> SlackConfig:
    """Parse slack section from config dict"""
    slack_data = data.get("slack", {})
    return SlackConfig(
        bot_token=slack_data.get("bot_token", ""),
        signing_secret=slack_data.get("signing_secret", ""),
        port=int(slack_data.get("port", 8080)),
        trigger=slack_data.get("trigger", "cho"),
    )


def load_config() -> DeployWatchConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.deploywatch/config.json)
    3. Default values
    """
    config = DeployWatchConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.store = _parse_store_config(data)
            config.slack = _parse_slack_config(data)
            config.log_level = data.get("log_level", "INFO")
        except (json.JSONDecodeError, IOError, ValueError, TypeError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # Environment variable overrides
    if os.getenv("ES_HOST"):
        config.store.host = os.getenv("ES_HOST")
    if os.getenv("ES_PORT"):
        config.store.port = int(os.getenv("ES_PORT"))
    if os.getenv("ES_INDEX"):
        config.store.index = os.getenv("ES_INDEX")
    if os.getenv("ES_LOG"):
        config.store.log = _parse_bool(os.getenv("ES_LOG"))
    if os.getenv("ES_TIMEOUT"):
        config.store.timeout = float(os.getenv("ES_TIMEOUT"))

    if os.getenv("DEPLOYWATCH_PORT"):
        config.slack.port = int(os.getenv("DEPLOYWATCH_PORT"))
    if os.getenv("DEPLOYWATCH_TRIGGER"):
        config.slack.trigger = os.getenv("DEPLOYWATCH_TRIGGER")

    # Secrets: track env-sourced keys so save_config never persists them
    _env_secret_map = {
        "SLACK_BOT_TOKEN": "bot_token",
        "SLACK_SIGNING_SECRET": "signing_secret",
    }
    for env_var, attr in _env_secret_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.slack, attr, val)
            config._env_sourced_keys.add(attr)

    if os.getenv("DEPLOYWATCH_LOG_LEVEL"):
        config.log_level = os.getenv("DEPLOYWATCH_LOG_LEVEL")

    return config


def save_config(config: DeployWatchConfig) -> None:
    """Save configuration to file.

    Slack secrets that were sourced from environment variables are written
    as empty strings so that they are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    slack_section = {
        "bot_token": config.slack.bot_token,
        "signing_secret": config.slack.signing_secret,
        "port": config.slack.port,
        "trigger": config.slack.trigger,
    }
    for key in ("bot_token", "signing_secret"):
        if key in env_sourced:
            slack_section[key] = ""

    data = {
        "store": {
            "host": config.store.host,
            "port": config.store.port,
            "index": config.store.index,
            "log": config.store.log,
            "timeout": config.store.timeout,
        },
        "slack": slack_section,
        "log_level": config.log_level,
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def configure_logging(config: DeployWatchConfig) -> None:
    """Configure root logging for the entry points"""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
