"""Tests for the SQS review-queue wrapper."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from review_triage_bot.errors import QueueDeleteError, QueueReceiveError, QueueSendError
from review_triage_bot.models import QueuedReview, RawFeedItem, Sentiment, SentimentVerdict
from review_triage_bot.review_queue import ReviewQueue

QUEUE_URL = "https://sqs.ap-northeast-1.amazonaws.com/123456789012/NegativeReviews"


def client_error(operation: str) -> ClientError:
    return ClientError({"Error": {"Code": "AccessDenied", "Message": "nope"}}, operation)


def make_review() -> QueuedReview:
    return QueuedReview(
        sentiment=SentimentVerdict(Sentiment.NEGATIVE, {"Negative": 0.9}),
        body=RawFeedItem(id="r1", text="late delivery", username="sam"),
    )


class TestSend:
    def test_sends_json_body(self):
        client = MagicMock()
        client.send_message.return_value = {"MessageId": "m-1"}
        review = make_review()

        message_id = ReviewQueue(QUEUE_URL, client).send(review)

        assert message_id == "m-1"
        client.send_message.assert_called_once_with(QueueUrl=QUEUE_URL, MessageBody=review.to_json())

    def test_send_error(self):
        client = MagicMock()
        client.send_message.side_effect = client_error("SendMessage")
        with pytest.raises(QueueSendError):
            ReviewQueue(QUEUE_URL, client).send(make_review())


class TestReceive:
    def test_uses_fixed_receive_parameters(self):
        client = MagicMock()
        client.receive_message.return_value = {}

        ReviewQueue(QUEUE_URL, client).receive()

        client.receive_message.assert_called_once_with(
            QueueUrl=QUEUE_URL,
            AttributeNames=["SentTimestamp"],
            MessageAttributeNames=["All"],
            MaxNumberOfMessages=10,
            VisibilityTimeout=20,
            WaitTimeSeconds=0,
        )

    def test_no_messages_key_means_empty(self):
        client = MagicMock()
        client.receive_message.return_value = {"ResponseMetadata": {}}
        assert ReviewQueue(QUEUE_URL, client).receive() == []

    def test_parses_messages(self):
        client = MagicMock()
        client.receive_message.return_value = {
            "Messages": [
                {
                    "MessageId": "m-1",
                    "ReceiptHandle": "rh-1",
                    "Body": "{}",
                    "Attributes": {"SentTimestamp": "1704067200000"},
                },
                {"MessageId": "m-2", "ReceiptHandle": "rh-2", "Body": "{}"},
            ]
        }

        messages = ReviewQueue(QUEUE_URL, client).receive()

        assert [m.receipt_handle for m in messages] == ["rh-1", "rh-2"]
        assert messages[0].sent_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert messages[1].sent_at is None

    def test_receive_error(self):
        client = MagicMock()
        client.receive_message.side_effect = client_error("ReceiveMessage")
        with pytest.raises(QueueReceiveError):
            ReviewQueue(QUEUE_URL, client).receive()


class TestDelete:
    def test_deletes_by_receipt_handle(self):
        client = MagicMock()
        ReviewQueue(QUEUE_URL, client).delete("rh-1")
        client.delete_message.assert_called_once_with(QueueUrl=QUEUE_URL, ReceiptHandle="rh-1")

    def test_delete_error_carries_receipt_handle(self):
        client = MagicMock()
        client.delete_message.side_effect = client_error("DeleteMessage")
        with pytest.raises(QueueDeleteError) as exc_info:
            ReviewQueue(QUEUE_URL, client).delete("rh-9")
        assert exc_info.value.receipt_handle == "rh-9"
