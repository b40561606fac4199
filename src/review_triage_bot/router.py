"""Parse verified Slack webhook payloads and dispatch them to handlers.

Every path returns its acknowledgment immediately; multi-step work (queue
draining, task creation, direct-message replies) is handed back as a
background task that reports its own outcome to the operator through an
ephemeral message.
"""

from __future__ import annotations

import hmac
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from review_triage_bot.blocks import CREATE_TASK_ACTION, LOAD_MORE_ACTION
from review_triage_bot.config import Config
from review_triage_bot.consumer import ReviewConsumer
from review_triage_bot.errors import AuthenticationError, PayloadError
from review_triage_bot.forwarder import TaskForwarder, build_task_request
from review_triage_bot.models import (
    BlockAction,
    EventCallback,
    InteractionPayload,
    SlashCommand,
    UrlVerification,
)
from review_triage_bot.notifier import SlackNotifier

logger = logging.getLogger(__name__)

PROCESSING_TEXT = "Processing request..."
FETCHING_MORE_TEXT = "Fetching more reviews..."
INVALID_ACTION_TEXT = "Invalid action"
INVALID_REQUEST_TEXT = "Invalid request"
VERIFICATION_FAILED_TEXT = "Verification failed."
MESSAGE_RECEIVED_TEXT = "Message received."


def ephemeral(text: str) -> dict:
    return {"response_type": "ephemeral", "text": text}


@dataclass
class Acknowledgement:
    status: int
    body: dict | str | None = None  # str bodies are sent as text/plain
    task: Callable[[], None] | None = None  # runs after the response is sent


# ── Payload parsing ───────────────────────────────────────────────


def _require_str(data: Mapping, key: str, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise PayloadError(f"{where} is missing '{key}'")
    return value


def _optional_str(data: Mapping, key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def parse_event_payload(data: object) -> UrlVerification | EventCallback:
    """Parse a JSON body posted to the events endpoint."""
    if not isinstance(data, dict):
        raise PayloadError("event payload must be a JSON object")
    kind = data.get("type")
    if kind == "url_verification":
        return UrlVerification(
            token=_optional_str(data, "token"),
            challenge=_require_str(data, "challenge", "url_verification"),
        )
    if kind == "event_callback":
        event = data.get("event")
        if not isinstance(event, dict):
            raise PayloadError("event_callback is missing 'event'")
        return EventCallback(
            event_type=_optional_str(event, "type"),
            channel=_optional_str(event, "channel"),
            channel_type=_optional_str(event, "channel_type"),
            user=_optional_str(event, "user"),
            text=_optional_str(event, "text"),
            ts=_optional_str(event, "ts"),
            thread_ts=_optional_str(event, "thread_ts"),
            bot_id=_optional_str(event, "bot_id"),
            subtype=_optional_str(event, "subtype"),
        )
    raise PayloadError(f"unsupported event payload type {kind!r}")


def _wants_reply(event: EventCallback) -> bool:
    """Plain user messages in a direct-message channel, excluding thread replies."""
    if event.event_type != "message" or event.channel_type != "im":
        return False
    if event.bot_id or event.subtype or event.thread_ts:
        return False
    # Our own reply echoes back as a message event on some workspaces.
    if event.text == MESSAGE_RECEIVED_TEXT:
        return False
    return bool(event.channel and event.user and event.ts)


def parse_command_payload(form: Mapping[str, str]) -> SlashCommand:
    """Parse the form fields of a slash-command request."""
    return SlashCommand(
        command=_require_str(form, "command", "slash command"),
        channel_id=_optional_str(form, "channel_id"),
        user_id=_optional_str(form, "user_id"),
    )


def parse_action_payload(form: Mapping[str, str]) -> BlockAction:
    """Parse the JSON ``payload`` form field of an interactivity request.

    Only the first action is considered. Channel and user are optional at
    this stage; the router insists on them for the actions that do work.
    """
    raw = form.get("payload")
    if not raw:
        raise PayloadError("interaction is missing 'payload'")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise PayloadError(f"interaction payload is not valid JSON: {exc}")
    if not isinstance(data, dict):
        raise PayloadError("interaction payload must be a JSON object")

    actions = data.get("actions")
    if not isinstance(actions, list) or not actions or not isinstance(actions[0], dict):
        raise PayloadError("interaction payload has no actions")
    action = actions[0]
    channel = data.get("channel") if isinstance(data.get("channel"), dict) else {}
    user = data.get("user") if isinstance(data.get("user"), dict) else {}

    return BlockAction(
        action_id=_require_str(action, "action_id", "action"),
        value=str(action.get("value") or ""),
        channel_id=str(channel.get("id") or ""),
        channel_name=str(channel.get("name") or ""),
        user_id=str(user.get("id") or ""),
        user_name=str(user.get("name") or user.get("username") or ""),
    )


# ── Dispatch ──────────────────────────────────────────────────────


class InteractionRouter:
    def __init__(
        self,
        config: Config,
        consumer: ReviewConsumer,
        forwarder: TaskForwarder,
        notifier: SlackNotifier,
    ) -> None:
        self._config = config
        self._consumer = consumer
        self._forwarder = forwarder
        self._notifier = notifier

    def dispatch(self, payload: InteractionPayload) -> Acknowledgement:
        if isinstance(payload, UrlVerification):
            return self._verify_url(payload)
        if isinstance(payload, EventCallback):
            return self._handle_event(payload)
        if isinstance(payload, SlashCommand):
            return self._handle_command(payload)
        if isinstance(payload, BlockAction):
            return self._handle_action(payload)
        raise TypeError(f"unsupported payload {type(payload).__name__}")

    def _verify_url(self, payload: UrlVerification) -> Acknowledgement:
        try:
            self._check_verification_token(payload.token)
        except AuthenticationError as exc:
            logger.warning("url_verification rejected: %s", exc)
            return Acknowledgement(401, ephemeral(VERIFICATION_FAILED_TEXT))
        logger.info("url_verification handshake completed")
        return Acknowledgement(200, payload.challenge)

    def _check_verification_token(self, token: str) -> None:
        expected = self._config.verification_token
        if not expected or not hmac.compare_digest(token.encode(), expected.encode()):
            raise AuthenticationError("verification token mismatch")

    def _handle_event(self, payload: EventCallback) -> Acknowledgement:
        if not _wants_reply(payload):
            logger.debug("Ignoring event_callback of type %s", payload.event_type)
            return Acknowledgement(200, {"ok": True})
        if payload.text.strip().lower() == "hi":
            text, thread_ts = f"Hi there, <@{payload.user}>", None
        else:
            text, thread_ts = MESSAGE_RECEIVED_TEXT, payload.ts
        logger.info("Replying to direct message from %s in %s", payload.user, payload.channel)
        return Acknowledgement(
            200,
            {"ok": True},
            self._background(
                self._notifier.post_message,
                payload.channel,
                text,
                thread_ts,
                channel=payload.channel,
                user=payload.user,
            ),
        )

    def _handle_command(self, payload: SlashCommand) -> Acknowledgement:
        if payload.command != self._config.review_command:
            logger.info("Unknown command %s from %s", payload.command, payload.user_id or "?")
            return Acknowledgement(
                400, ephemeral(f"Command not found. Try {self._config.review_command}")
            )
        if not payload.channel_id or not payload.user_id:
            logger.warning("Command %s is missing channel or user", payload.command)
            return Acknowledgement(400, ephemeral(INVALID_REQUEST_TEXT))
        logger.info("Review command from %s in %s", payload.user_id, payload.channel_id)
        return Acknowledgement(
            200,
            ephemeral(PROCESSING_TEXT),
            self._background(
                self._consumer.fetch_and_present,
                payload.channel_id,
                payload.user_id,
                channel=payload.channel_id,
                user=payload.user_id,
            ),
        )

    def _handle_action(self, payload: BlockAction) -> Acknowledgement:
        if payload.action_id not in (CREATE_TASK_ACTION, LOAD_MORE_ACTION):
            logger.info("Unknown action %s from %s", payload.action_id, payload.user_id or "?")
            return Acknowledgement(400, ephemeral(INVALID_ACTION_TEXT))
        if not payload.channel_id or not payload.user_id:
            logger.warning("Action %s is missing channel or user", payload.action_id)
            return Acknowledgement(400, ephemeral(INVALID_REQUEST_TEXT))

        if payload.action_id == LOAD_MORE_ACTION:
            return Acknowledgement(
                200,
                ephemeral(FETCHING_MORE_TEXT),
                self._background(
                    self._consumer.fetch_and_present,
                    payload.channel_id,
                    payload.user_id,
                    channel=payload.channel_id,
                    user=payload.user_id,
                ),
            )

        try:
            request = build_task_request(
                payload.value,
                payload.channel_name or payload.channel_id,
                payload.user_name or payload.user_id,
                self._config,
            )
        except PayloadError as exc:
            logger.warning("Bad create-task value from %s: %s", payload.user_id, exc)
            return Acknowledgement(400, ephemeral(INVALID_REQUEST_TEXT))

        return Acknowledgement(
            200,
            None,
            self._background(
                self._forwarder.create_task,
                request,
                payload.channel_id,
                payload.user_id,
                channel=payload.channel_id,
                user=payload.user_id,
            ),
        )

    def _background(self, func: Callable, *args, channel: str, user: str) -> Callable[[], None]:
        """Wrap *func* so a crash becomes an ephemeral notice to *user* in *channel*."""

        def run() -> None:
            try:
                func(*args)
            except Exception:
                logger.exception("Background task %s failed", getattr(func, "__name__", func))
                self._notifier.post_error(channel, user)

        return run
