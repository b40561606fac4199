"""Slack message sender for operator feedback and direct-message replies."""

from __future__ import annotations

import logging

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

logger = logging.getLogger(__name__)

GENERIC_ERROR_TEXT = "There was an error processing the request."


class SlackNotifier:
    """Posts messages to Slack on behalf of the bot.

    Consumer and forwarder feedback is always ephemeral, visible only to one
    user in one channel. The only public posts are replies to direct messages.
    """

    def __init__(self, client: WebClient) -> None:
        self._client = client

    def post_ephemeral(
        self, channel: str, user: str, text: str, blocks: list[dict] | None = None
    ) -> bool:
        """Send *text* (and optional *blocks*) to *user* in *channel*.

        Returns False instead of raising when Slack rejects the call.
        """
        kwargs = {"channel": channel, "user": user, "text": text}
        if blocks:
            kwargs["blocks"] = blocks
        try:
            self._client.chat_postEphemeral(**kwargs)
        except SlackApiError as exc:
            logger.error(
                "chat.postEphemeral failed for %s in %s: %s",
                user,
                channel,
                exc.response.get("error") if exc.response is not None else exc,
            )
            return False
        logger.debug("Ephemeral message sent to %s in %s", user, channel)
        return True

    def post_error(self, channel: str, user: str, text: str = GENERIC_ERROR_TEXT) -> bool:
        return self.post_ephemeral(channel, user, text)

    def post_message(self, channel: str, text: str, thread_ts: str | None = None) -> bool:
        """Post *text* publicly to *channel*, threaded under *thread_ts* if given.

        Only used for direct-message replies; same failure contract as
        :meth:`post_ephemeral`.
        """
        kwargs = {"channel": channel, "text": text}
        if thread_ts:
            kwargs["thread_ts"] = thread_ts
        try:
            self._client.chat_postMessage(**kwargs)
        except SlackApiError as exc:
            logger.error(
                "chat.postMessage failed in %s: %s",
                channel,
                exc.response.get("error") if exc.response is not None else exc,
            )
            return False
        logger.debug("Message sent to %s", channel)
        return True
