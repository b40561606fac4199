"""Consumer stage: drain the review queue and present negative reviews."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from review_triage_bot.blocks import review_card
from review_triage_bot.errors import PayloadError, QueueDeleteError, QueueReceiveError
from review_triage_bot.models import QueuedReview, ReceivedMessage
from review_triage_bot.notifier import GENERIC_ERROR_TEXT, SlackNotifier
from review_triage_bot.review_queue import ReviewQueue

logger = logging.getLogger(__name__)

NO_REVIEWS_TEXT = "There are no new reviews."
NO_NEGATIVE_REVIEWS_TEXT = "There are no new negative reviews."
DELETE_ERROR_TEXT = "Some reviews could not be removed from the queue and may appear again."


@dataclass
class FetchResult:
    received: int = 0
    presented: list[str] = field(default_factory=list)  # review ids, in card order
    parse_failures: int = 0
    render_failures: int = 0  # negative reviews that could not be put on the card
    deleted: list[str] = field(default_factory=list)  # receipt handles
    delete_failures: list[str] = field(default_factory=list)
    receive_failed: bool = False


def dedupe_reviews(reviews: list[QueuedReview]) -> list[QueuedReview]:
    """Drop repeated ``body.id`` values, keeping the first occurrence in order."""
    seen: dict[str, QueuedReview] = {}
    for review in reviews:
        if review.id not in seen:
            seen[review.id] = review
    return list(seen.values())


class ReviewConsumer:
    """Drains one batch from the queue per call and shows it to one operator.

    Every received message is deleted at the end of the call whether or not
    presentation worked; a failed delete only means the message may be shown
    again once its visibility lease runs out.
    """

    def __init__(self, queue: ReviewQueue, notifier: SlackNotifier) -> None:
        self._queue = queue
        self._notifier = notifier

    def fetch_and_present(self, channel: str, user: str) -> FetchResult:
        result = FetchResult()

        try:
            messages = self._queue.receive()
        except QueueReceiveError as exc:
            logger.error("Queue receive failed for %s in %s: %s", user, channel, exc)
            result.receive_failed = True
            self._notifier.post_error(channel, user, GENERIC_ERROR_TEXT)
            return result

        result.received = len(messages)
        if not messages:
            logger.info("No messages found in queue")
            self._notifier.post_ephemeral(channel, user, NO_REVIEWS_TEXT)
            return result

        try:
            self._present(messages, channel, user, result)
        finally:
            self._delete_all(messages, channel, user, result)

        return result

    def _present(
        self, messages: list[ReceivedMessage], channel: str, user: str, result: FetchResult
    ) -> None:
        parsed = []
        for message in messages:
            try:
                parsed.append(QueuedReview.from_json(message.body, sent_at=message.sent_at))
            except PayloadError as exc:
                result.parse_failures += 1
                logger.warning("Skipping malformed queue message %s: %s", message.message_id, exc)

        negative = [review for review in dedupe_reviews(parsed) if review.is_negative]
        if not negative:
            self._notifier.post_ephemeral(channel, user, NO_NEGATIVE_REVIEWS_TEXT)
            return

        card = review_card(negative)
        result.render_failures = len(card.skipped)
        if not card.reviews:
            self._notifier.post_ephemeral(channel, user, NO_NEGATIVE_REVIEWS_TEXT)
            return

        text = f"{len(card.reviews)} new negative review(s)"
        if self._notifier.post_ephemeral(channel, user, text, blocks=card.blocks):
            result.presented = [review.id for review in card.reviews]
            logger.info("Presented %d review(s) to %s in %s", len(card.reviews), user, channel)

    def _delete_all(
        self, messages: list[ReceivedMessage], channel: str, user: str, result: FetchResult
    ) -> None:
        for message in messages:
            try:
                self._queue.delete(message.receipt_handle)
            except QueueDeleteError as exc:
                logger.error("Delete failed for message %s: %s", message.message_id, exc)
                result.delete_failures.append(message.receipt_handle)
            else:
                logger.debug("Message deleted: %s", message.message_id)
                result.deleted.append(message.receipt_handle)

        if result.delete_failures:
            self._notifier.post_error(channel, user, DELETE_ERROR_TEXT)
