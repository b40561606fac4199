"""Amazon SQS wrapper for the negative-review queue."""

import logging
from datetime import datetime, timezone

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from review_triage_bot.errors import QueueDeleteError, QueueReceiveError, QueueSendError
from review_triage_bot.models import QueuedReview, ReceivedMessage

logger = logging.getLogger(__name__)


def _parse_sent_timestamp(attributes: dict) -> datetime | None:
    """SQS reports ``SentTimestamp`` as epoch milliseconds in a string."""
    raw = (attributes or {}).get("SentTimestamp")
    if raw is None:
        return None
    try:
        return datetime.fromtimestamp(int(raw) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        logger.debug("Ignoring unparseable SentTimestamp %r", raw)
        return None


class ReviewQueue:
    """Send, receive and delete review messages on a single SQS queue.

    Receive is a non-blocking poll by default (``wait_time_seconds=0``) and
    leases each message for ``visibility_timeout`` seconds; a message that is
    not deleted within the lease becomes visible again.
    """

    def __init__(
        self,
        queue_url: str,
        client=None,
        *,
        region: str | None = None,
        max_messages: int = 10,
        visibility_timeout: int = 20,
        wait_time_seconds: int = 0,
    ) -> None:
        self.queue_url = queue_url
        self.max_messages = max_messages
        self.visibility_timeout = visibility_timeout
        self.wait_time_seconds = wait_time_seconds
        self._client = client or boto3.client("sqs", region_name=region)

    def send(self, review: QueuedReview) -> str:
        try:
            resp = self._client.send_message(QueueUrl=self.queue_url, MessageBody=review.to_json())
        except (BotoCoreError, ClientError) as exc:
            raise QueueSendError(f"send_message failed: {exc}") from exc
        message_id = resp.get("MessageId", "")
        logger.info("Enqueued review %s as message %s", review.id, message_id)
        return message_id

    def receive(self) -> list[ReceivedMessage]:
        try:
            resp = self._client.receive_message(
                QueueUrl=self.queue_url,
                AttributeNames=["SentTimestamp"],
                MessageAttributeNames=["All"],
                MaxNumberOfMessages=self.max_messages,
                VisibilityTimeout=self.visibility_timeout,
                WaitTimeSeconds=self.wait_time_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            raise QueueReceiveError(f"receive_message failed: {exc}") from exc

        messages = [
            ReceivedMessage(
                message_id=m.get("MessageId", ""),
                receipt_handle=m["ReceiptHandle"],
                body=m.get("Body", ""),
                sent_at=_parse_sent_timestamp(m.get("Attributes")),
            )
            for m in resp.get("Messages") or []
        ]
        logger.info("Received %d message(s) from queue", len(messages))
        return messages

    def delete(self, receipt_handle: str) -> None:
        try:
            self._client.delete_message(QueueUrl=self.queue_url, ReceiptHandle=receipt_handle)
        except (BotoCoreError, ClientError) as exc:
            raise QueueDeleteError(receipt_handle, f"delete_message failed: {exc}") from exc
