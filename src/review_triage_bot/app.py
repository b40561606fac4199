"""FastAPI application exposing the Slack webhook endpoints."""

from __future__ import annotations

import json
import logging
from urllib.parse import parse_qsl

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from slack_sdk import WebClient

from review_triage_bot.asana_client import AsanaClient
from review_triage_bot.config import Config
from review_triage_bot.consumer import ReviewConsumer
from review_triage_bot.errors import AuthenticationError, PayloadError
from review_triage_bot.forwarder import TaskForwarder
from review_triage_bot.notifier import SlackNotifier
from review_triage_bot.review_queue import ReviewQueue
from review_triage_bot.router import (
    INVALID_REQUEST_TEXT,
    Acknowledgement,
    InteractionRouter,
    ephemeral,
    parse_action_payload,
    parse_command_payload,
    parse_event_payload,
)
from review_triage_bot.signature import verify_headers

logger = logging.getLogger(__name__)

STATUS_TEXT = "Review Triage Bot is Running!"
RETRY_HEADER = "X-Slack-Retry-Num"


def build_router(config: Config) -> InteractionRouter:
    """Wire the production collaborators for *config*."""
    notifier = SlackNotifier(WebClient(token=config.bot_token))
    queue = ReviewQueue(
        config.queue_url,
        region=config.queue_region,
        max_messages=config.max_messages,
        visibility_timeout=config.visibility_timeout,
        wait_time_seconds=config.wait_time_seconds,
    )
    tracker = AsanaClient(
        config.asana_access_token, api_url=config.asana_api_url, timeout=config.asana_timeout
    )
    return InteractionRouter(
        config,
        consumer=ReviewConsumer(queue, notifier),
        forwarder=TaskForwarder(tracker, notifier),
        notifier=notifier,
    )


def _to_response(ack: Acknowledgement, background_tasks: BackgroundTasks) -> Response:
    if ack.task is not None:
        background_tasks.add_task(ack.task)
    if ack.body is None:
        return Response(status_code=ack.status)
    if isinstance(ack.body, str):
        return PlainTextResponse(ack.body, status_code=ack.status)
    return JSONResponse(ack.body, status_code=ack.status)


def _parse_form(body: bytes) -> dict[str, str]:
    try:
        return dict(parse_qsl(body.decode("utf-8"), keep_blank_values=True))
    except UnicodeDecodeError as exc:
        raise PayloadError(f"form body is not UTF-8: {exc}")


def create_app(config: Config, router: InteractionRouter | None = None) -> FastAPI:
    if router is None:
        router = build_router(config)

    app = FastAPI(title="review-triage-bot", docs_url=None, redoc_url=None)

    async def verified_body(request: Request) -> bytes:
        body = await request.body()
        if not verify_headers(config.signing_secret, body, request.headers):
            raise AuthenticationError(f"invalid signature on {request.url.path}")
        return body

    @app.exception_handler(AuthenticationError)
    async def _auth_failed(request: Request, exc: AuthenticationError) -> JSONResponse:
        logger.warning("Rejected request: %s", exc)
        return JSONResponse(ephemeral("Invalid request signature."), status_code=401)

    @app.exception_handler(PayloadError)
    async def _bad_payload(request: Request, exc: PayloadError) -> JSONResponse:
        logger.warning("Malformed payload on %s: %s", request.url.path, exc)
        return JSONResponse(ephemeral(INVALID_REQUEST_TEXT), status_code=400)

    @app.get("/", response_class=PlainTextResponse)
    async def status() -> str:
        return STATUS_TEXT

    @app.post("/slack/events")
    @app.post("/slack/events/", include_in_schema=False)
    async def events(request: Request, background_tasks: BackgroundTasks) -> Response:
        body = await verified_body(request)
        if RETRY_HEADER in request.headers:
            logger.info("Ignoring Slack retry #%s", request.headers[RETRY_HEADER])
            return JSONResponse({"ok": True}, headers={"X-Slack-No-Retry": "1"})
        try:
            data = json.loads(body)
        except json.JSONDecodeError as exc:
            raise PayloadError(f"event body is not valid JSON: {exc}")
        ack = router.dispatch(parse_event_payload(data))
        return _to_response(ack, background_tasks)

    @app.post("/slack/commands")
    @app.post("/slack/commands/", include_in_schema=False)
    async def commands(request: Request, background_tasks: BackgroundTasks) -> Response:
        body = await verified_body(request)
        ack = router.dispatch(parse_command_payload(_parse_form(body)))
        return _to_response(ack, background_tasks)

    @app.post("/slack/actions")
    @app.post("/slack/actions/", include_in_schema=False)
    async def actions(request: Request, background_tasks: BackgroundTasks) -> Response:
        body = await verified_body(request)
        ack = router.dispatch(parse_action_payload(_parse_form(body)))
        return _to_response(ack, background_tasks)

    return app
