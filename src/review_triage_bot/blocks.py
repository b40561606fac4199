"""Block Kit layouts for review cards and task confirmations."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime

from review_triage_bot.models import CreatedTask, QueuedReview

logger = logging.getLogger(__name__)

CREATE_TASK_ACTION = "create_task_action"
LOAD_MORE_ACTION = "load_more_action"

# Slack limits
MAX_BUTTON_VALUE = 2000
MAX_SECTION_TEXT = 3000


@dataclass
class ReviewCard:
    blocks: list[dict]
    reviews: list[QueuedReview]  # rendered reviews, in card order
    skipped: list[str] = field(default_factory=list)  # ids that could not be rendered


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    if limit <= 1:
        return ""
    return text[: limit - 1] + "…"


def escape_mrkdwn(text: str) -> str:
    """Escape the three characters Slack treats as control sequences."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _format_time(value: datetime | None) -> str:
    if value is None:
        return "unknown"
    return value.strftime("%Y-%m-%d %H:%M UTC")


def _quote(text: str) -> str:
    return "\n".join(f">{line}" for line in text.splitlines() or [""])


def _encode(data: dict) -> str:
    return json.dumps(data, separators=(",", ":"))


def button_value(review: QueuedReview) -> str:
    """Encode the review body into a button value Slack will accept.

    Text is shortened first, then the username. Raises ValueError when the
    id alone does not fit.
    """
    data = review.body.to_dict()
    value = _encode(data)
    # Escaping makes encoded length non-linear in field length, so shrink until it fits.
    for key in ("text", "username"):
        while len(value) > MAX_BUTTON_VALUE and data[key]:
            overflow = len(value) - MAX_BUTTON_VALUE
            data[key] = _truncate(data[key], max(0, len(data[key]) - overflow - 1))
            value = _encode(data)
    if len(value) > MAX_BUTTON_VALUE:
        raise ValueError(f"review id is too long for a button value ({len(review.id)} chars)")
    return value


def _top_score(review: QueuedReview) -> str:
    if not review.sentiment.scores:
        return review.sentiment.label.value.title()
    name, score = max(review.sentiment.scores.items(), key=lambda kv: kv[1])
    return f"{escape_mrkdwn(name)} {score:.0%}"


def review_blocks(review: QueuedReview, index: int) -> list[dict]:
    """Section, context and divider for one review."""
    username = escape_mrkdwn(review.body.username)
    author = f"*@{username}*" if username else "*Anonymous*"
    text = f"{author}\n{_quote(escape_mrkdwn(review.body.text))}"
    return [
        {
            "type": "section",
            "block_id": f"review_{index}",
            "text": {"type": "mrkdwn", "text": _truncate(text, MAX_SECTION_TEXT)},
            "accessory": {
                "type": "button",
                "text": {"type": "plain_text", "text": "Create task"},
                "action_id": CREATE_TASK_ACTION,
                "value": button_value(review),
            },
        },
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": f"Received {_format_time(review.sent_at)} · {_top_score(review)}",
                }
            ],
        },
        {"type": "divider"},
    ]


def review_card(reviews: list[QueuedReview]) -> ReviewCard:
    """Build the interactive card listing *reviews*.

    Each review gets its own "Create task" button; the card ends with a
    "Load more" button that drains the next batch. A review that cannot be
    rendered is left out on its own without affecting the others.
    """
    rendered: list[QueuedReview] = []
    body: list[dict] = []
    skipped: list[str] = []
    for review in reviews:
        try:
            body.extend(review_blocks(review, len(rendered)))
        except (TypeError, ValueError) as exc:
            logger.warning("Leaving review %s out of the card: %s", review.id[:64], exc)
            skipped.append(review.id)
            continue
        rendered.append(review)

    blocks: list[dict] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"New negative reviews ({len(rendered)})"},
        },
        *body,
        {
            "type": "actions",
            "elements": [
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "Load more"},
                    "action_id": LOAD_MORE_ACTION,
                    "value": "load_more",
                }
            ],
        },
    ]
    return ReviewCard(blocks=blocks, reviews=rendered, skipped=skipped)


def task_confirmation_card(task: CreatedTask) -> list[dict]:
    name = escape_mrkdwn(task.name)
    return [
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f":white_check_mark: Task created: *<{task.permalink_url}|{name}>*",
            },
        },
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Workspace*\n{escape_mrkdwn(task.workspace) or '-'}"},
                {"type": "mrkdwn", "text": f"*Project*\n{escape_mrkdwn(task.project) or '-'}"},
                {"type": "mrkdwn", "text": f"*Section*\n{escape_mrkdwn(task.section) or '-'}"},
                {"type": "mrkdwn", "text": f"*Created*\n{_format_time(task.created_at)}"},
            ],
        },
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": _truncate(
                    f"*Description*\n{escape_mrkdwn(task.notes) or '-'}", MAX_SECTION_TEXT
                ),
            },
        },
    ]
