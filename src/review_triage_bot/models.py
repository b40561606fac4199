"""Shared data structures used across all components."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from review_triage_bot.errors import PayloadError


class Sentiment(Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"
    MIXED = "MIXED"


@dataclass(frozen=True)
class RawFeedItem:
    id: str  # unique per source item
    text: str
    username: str = ""

    @classmethod
    def from_dict(cls, data: object) -> RawFeedItem:
        """Build a feed item from a decoded JSON object.

        ``id`` is required; ``text`` and ``username`` default to empty strings
        so that callers can decide what to do with text-less records.
        """
        if not isinstance(data, dict):
            raise PayloadError(f"feed item must be a mapping, got {type(data).__name__}")
        item_id = data.get("id")
        if item_id is None or item_id == "":
            raise PayloadError("feed item is missing 'id'")
        text = data.get("text")
        username = data.get("username")
        return cls(
            id=str(item_id),
            text=text if isinstance(text, str) else "",
            username=username if isinstance(username, str) else "",
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "text": self.text, "username": self.username}


@dataclass(frozen=True)
class SentimentVerdict:
    label: Sentiment
    scores: dict[str, float] = field(default_factory=dict)  # e.g. {"Negative": 0.97, ...}

    @classmethod
    def from_dict(cls, data: object) -> SentimentVerdict:
        if not isinstance(data, dict):
            raise PayloadError("sentiment must be a mapping")
        try:
            label = Sentiment(data.get("label"))
        except ValueError:
            raise PayloadError(f"unknown sentiment label {data.get('label')!r}")
        scores = data.get("scores") or {}
        if not isinstance(scores, dict):
            raise PayloadError("sentiment scores must be a mapping")
        for name, score in scores.items():
            if isinstance(score, bool) or not isinstance(score, (int, float)):
                raise PayloadError(f"sentiment score {name!r} is not a number: {score!r}")
        return cls(label=label, scores=dict(scores))

    def to_dict(self) -> dict:
        return {"label": self.label.value, "scores": dict(self.scores)}


@dataclass(frozen=True)
class QueuedReview:
    """The JSON payload carried by every message on the review queue."""

    sentiment: SentimentVerdict
    body: RawFeedItem
    sent_at: datetime | None = None  # enqueue time, filled in on receive only

    @property
    def id(self) -> str:
        return self.body.id

    @property
    def is_negative(self) -> bool:
        return self.sentiment.label is Sentiment.NEGATIVE

    def to_json(self) -> str:
        return json.dumps({"sentiment": self.sentiment.to_dict(), "body": self.body.to_dict()})

    @classmethod
    def from_json(cls, raw: str, sent_at: datetime | None = None) -> QueuedReview:
        try:
            data = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as exc:
            raise PayloadError(f"queue message is not valid JSON: {exc}")
        if not isinstance(data, dict):
            raise PayloadError("queue message must be a JSON object")
        return cls(
            sentiment=SentimentVerdict.from_dict(data.get("sentiment")),
            body=RawFeedItem.from_dict(data.get("body")),
            sent_at=sent_at,
        )


@dataclass(frozen=True)
class ReceivedMessage:
    message_id: str
    receipt_handle: str  # opaque, valid only within the visibility lease
    body: str
    sent_at: datetime | None = None


@dataclass(frozen=True)
class PendingTaskRequest:
    title: str
    notes: str
    workspace_id: str
    project_id: str


@dataclass(frozen=True)
class CreatedTask:
    gid: str
    name: str
    permalink_url: str
    workspace: str = ""
    project: str = ""
    section: str = ""
    created_at: datetime | None = None
    notes: str = ""


# ── Interaction payloads ──────────────────────────────────────────


@dataclass(frozen=True)
class UrlVerification:
    token: str
    challenge: str


@dataclass(frozen=True)
class EventCallback:
    event_type: str
    channel: str = ""
    channel_type: str = ""  # "im" for direct messages
    user: str = ""
    text: str = ""
    ts: str = ""
    thread_ts: str = ""
    bot_id: str = ""
    subtype: str = ""


@dataclass(frozen=True)
class SlashCommand:
    command: str
    channel_id: str
    user_id: str


@dataclass(frozen=True)
class BlockAction:
    action_id: str
    value: str
    channel_id: str
    channel_name: str
    user_id: str
    user_name: str


InteractionPayload = UrlVerification | EventCallback | SlashCommand | BlockAction
