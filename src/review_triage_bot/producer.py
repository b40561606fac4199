"""Producer stage: classify raw feed items and enqueue the negative ones.

Deployed as an AWS Lambda function subscribed to the raw feed queue; each
invocation carries a batch of records that are processed independently.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from review_triage_bot.config import PRODUCER_REQUIRED, load_config
from review_triage_bot.errors import ClassificationError, PayloadError, QueueSendError
from review_triage_bot.models import QueuedReview, RawFeedItem, Sentiment
from review_triage_bot.review_queue import ReviewQueue
from review_triage_bot.sentiment import SentimentClassifier

logger = logging.getLogger(__name__)
# Lambda configures the root logger at WARNING
logger.setLevel(logging.INFO)


@dataclass
class BatchResult:
    received: int = 0
    enqueued: int = 0
    skipped: int = 0  # malformed or text-less records, or non-negative verdicts
    failed: int = 0  # classifier or publish errors


def classify_and_enqueue(
    item: RawFeedItem, *, classifier: SentimentClassifier, queue: ReviewQueue
) -> bool:
    """Classify *item* and publish it to the review queue iff it is negative.

    Returns True when the item was enqueued. Classifier and publish errors
    are logged and re-raised for the batch loop to count; neither is retried.
    """
    if not item.text.strip():
        logger.warning("Skipping feed item %s: no text", item.id)
        return False

    try:
        verdict = classifier.classify(item.text)
    except ClassificationError as exc:
        logger.error("Classification failed for feed item %s: %s", item.id, exc)
        raise

    if verdict.label is not Sentiment.NEGATIVE:
        logger.debug("Feed item %s is %s; not enqueued", item.id, verdict.label.value)
        return False

    logger.info("Negative review %s from @%s", item.id, item.username or "unknown")
    try:
        queue.send(QueuedReview(sentiment=verdict, body=item))
    except QueueSendError as exc:
        logger.error("Failed to enqueue feed item %s: %s", item.id, exc)
        raise
    return True


def _parse_record(record: dict) -> RawFeedItem:
    body = record.get("body") if isinstance(record, dict) else None
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except json.JSONDecodeError as exc:
            raise PayloadError(f"record body is not valid JSON: {exc}")
    return RawFeedItem.from_dict(body)


def process_records(
    records: list[dict], *, classifier: SentimentClassifier, queue: ReviewQueue
) -> BatchResult:
    """Run every record through :func:`classify_and_enqueue`.

    A failure on one record never stops the remaining records.
    """
    result = BatchResult(received=len(records))
    for record in records:
        try:
            item = _parse_record(record)
        except PayloadError as exc:
            record_id = record.get("messageId", "?") if isinstance(record, dict) else "?"
            logger.warning("Invalid feed record %s: %s", record_id, exc)
            result.skipped += 1
            continue

        try:
            enqueued = classify_and_enqueue(item, classifier=classifier, queue=queue)
        except (ClassificationError, QueueSendError):
            result.failed += 1
            continue

        if enqueued:
            result.enqueued += 1
        else:
            result.skipped += 1

    logger.info(
        "Processed %d record(s): %d enqueued, %d skipped, %d failed",
        result.received,
        result.enqueued,
        result.skipped,
        result.failed,
    )
    return result


_clients: tuple[SentimentClassifier, ReviewQueue] | None = None


def _get_clients() -> tuple[SentimentClassifier, ReviewQueue]:
    """Build the boto3-backed clients once per Lambda container."""
    global _clients
    if _clients is None:
        config = load_config()
        config.require(*PRODUCER_REQUIRED)
        _clients = (
            SentimentClassifier(config.language_code, region=config.queue_region),
            ReviewQueue(config.queue_url, region=config.queue_region),
        )
    return _clients


def handler(event: dict, context) -> str:
    """AWS Lambda entry point for SQS-triggered feed batches."""
    classifier, queue = _get_clients()
    process_records(event.get("Records") or [], classifier=classifier, queue=queue)
    return "OK"
