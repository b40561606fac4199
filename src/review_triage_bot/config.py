"""Configuration loading and validation for review-triage-bot."""

import dataclasses
import logging
import os
from dataclasses import dataclass, field

import yaml

logger = logging.getLogger(__name__)

KNOWN_KEYS = {
    "queue_url",
    "queue_region",
    "language_code",
    "review_command",
    "asana_workspace_id",
    "asana_project_id",
    "asana_api_url",
    "asana_timeout",
    "port",
    "max_messages",
    "visibility_timeout",
    "wait_time_seconds",
}

# Secrets are only ever taken from the environment, never from the YAML file.
SECRET_ENV_VARS = {
    "bot_token": "SLACK_BOT_TOKEN",
    "signing_secret": "SLACK_SIGNING_SECRET",
    "verification_token": "SLACK_VERIFICATION_TOKEN",
    "asana_access_token": "ASANA_ACCESS_TOKEN",
}

SERVER_REQUIRED = (
    "bot_token",
    "signing_secret",
    "verification_token",
    "queue_url",
    "asana_access_token",
    "asana_workspace_id",
    "asana_project_id",
)

PRODUCER_REQUIRED = ("queue_url",)


@dataclass(frozen=True)
class Config:
    queue_url: str = ""
    queue_region: str = "ap-northeast-1"
    language_code: str = "en"
    review_command: str = "/review"
    asana_workspace_id: str = ""
    asana_project_id: str = ""
    asana_api_url: str = "https://app.asana.com/api/1.0"
    asana_timeout: int = 10
    port: int = 3000
    max_messages: int = 10
    visibility_timeout: int = 20
    wait_time_seconds: int = 0
    bot_token: str = field(default="", repr=False)
    signing_secret: str = field(default="", repr=False)
    verification_token: str = field(default="", repr=False)
    asana_access_token: str = field(default="", repr=False)

    def require(self, *names: str) -> None:
        """Raise ValueError naming every field in *names* that is empty."""
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            labels = [
                f"{name} (env {SECRET_ENV_VARS[name]})" if name in SECRET_ENV_VARS else name
                for name in missing
            ]
            raise ValueError("Missing required configuration: " + ", ".join(labels))


def _validate_config(config: Config) -> None:
    """Validate config values, raising ValueError on invalid fields."""
    for name in ("asana_timeout", "port", "max_messages", "visibility_timeout", "wait_time_seconds"):
        value = getattr(config, name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer, got {type(value).__name__}")

    if not 1 <= config.port <= 65535:
        raise ValueError(f"port must be between 1 and 65535, got {config.port}")

    # SQS ReceiveMessage limits
    if not 1 <= config.max_messages <= 10:
        raise ValueError(f"max_messages must be between 1 and 10, got {config.max_messages}")
    if not 0 <= config.visibility_timeout <= 43200:
        raise ValueError(
            f"visibility_timeout must be between 0 and 43200, got {config.visibility_timeout}"
        )
    if not 0 <= config.wait_time_seconds <= 20:
        raise ValueError(
            f"wait_time_seconds must be between 0 and 20, got {config.wait_time_seconds}"
        )

    if config.asana_timeout <= 0:
        raise ValueError(f"asana_timeout must be positive, got {config.asana_timeout}")

    if not config.review_command.startswith("/"):
        raise ValueError(
            f"review_command must start with '/', got {config.review_command!r}"
        )
    if not config.language_code:
        raise ValueError("language_code must not be empty")


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML file plus secrets from the environment.

    Config path resolution order:
    1. Explicit path argument
    2. REVIEW_TRIAGE_CONFIG environment variable
    3. ~/.config/review-triage-bot/config.yaml
    """
    if path is None:
        path = os.environ.get("REVIEW_TRIAGE_CONFIG")
    if path is None:
        path = os.path.expanduser("~/.config/review-triage-bot/config.yaml")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a YAML mapping, got {type(raw).__name__}")

    values = {}
    for key, value in raw.items():
        if key not in KNOWN_KEYS:
            logger.warning("Unknown config key '%s' - ignoring", key)
            continue
        if value is None:
            raise ValueError(f"{key} must not be empty (got null)")
        values[key] = value

    # IDs are often written unquoted in YAML and come back as ints.
    for key in ("queue_url", "queue_region", "language_code", "review_command",
                "asana_workspace_id", "asana_project_id", "asana_api_url"):
        if key in values:
            values[key] = str(values[key])

    if os.environ.get("PORT"):
        try:
            values["port"] = int(os.environ["PORT"])
        except ValueError:
            raise ValueError(f"PORT must be an integer, got {os.environ['PORT']!r}")

    for name, env_var in SECRET_ENV_VARS.items():
        values[name] = os.environ.get(env_var, "")

    config = Config(**values)

    _validate_config(config)

    return config


def with_overrides(config: Config, **changes) -> Config:
    """Return a validated copy of *config* with *changes* applied."""
    updated = dataclasses.replace(config, **changes)
    _validate_config(updated)
    return updated
