"""Sentiment classification via Amazon Comprehend."""

import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from review_triage_bot.errors import ClassificationError
from review_triage_bot.models import Sentiment, SentimentVerdict

logger = logging.getLogger(__name__)


class SentimentClassifier:
    """Thin wrapper around ``comprehend.detect_sentiment``.

    The language is fixed at construction time; every call sends exactly
    one text and returns its verdict, with no retry layer of its own.
    """

    def __init__(self, language_code: str = "en", client=None, region: str | None = None) -> None:
        self.language_code = language_code
        self._client = client or boto3.client("comprehend", region_name=region)

    def classify(self, text: str) -> SentimentVerdict:
        try:
            resp = self._client.detect_sentiment(LanguageCode=self.language_code, Text=text)
        except (BotoCoreError, ClientError) as exc:
            raise ClassificationError(f"detect_sentiment failed: {exc}") from exc

        try:
            label = Sentiment(resp["Sentiment"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ClassificationError(f"unexpected classifier response: {exc}") from exc

        scores = resp.get("SentimentScore") or {}
        logger.debug("Classified text (%d chars) as %s", len(text), label.value)
        return SentimentVerdict(label=label, scores=dict(scores))
