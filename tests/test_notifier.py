"""Tests for the Slack notifier."""

import logging
from unittest.mock import MagicMock

from slack_sdk.errors import SlackApiError

from review_triage_bot.notifier import GENERIC_ERROR_TEXT, SlackNotifier


class TestPostEphemeral:
    def test_posts_text(self):
        client = MagicMock()

        assert SlackNotifier(client).post_ephemeral("C1", "U1", "hello") is True

        client.chat_postEphemeral.assert_called_once_with(channel="C1", user="U1", text="hello")
        client.chat_postMessage.assert_not_called()

    def test_posts_blocks(self):
        client = MagicMock()
        blocks = [{"type": "divider"}]

        SlackNotifier(client).post_ephemeral("C1", "U1", "fallback", blocks=blocks)

        assert client.chat_postEphemeral.call_args.kwargs["blocks"] == blocks

    def test_slack_error_returns_false(self, caplog):
        client = MagicMock()
        client.chat_postEphemeral.side_effect = SlackApiError(
            "failed", {"ok": False, "error": "channel_not_found"}
        )

        with caplog.at_level(logging.ERROR):
            assert SlackNotifier(client).post_ephemeral("C1", "U1", "hello") is False

        assert "channel_not_found" in caplog.text

    def test_post_error_default_text(self):
        client = MagicMock()

        SlackNotifier(client).post_error("C1", "U1")

        assert client.chat_postEphemeral.call_args.kwargs["text"] == GENERIC_ERROR_TEXT


class TestPostMessage:
    def test_threaded_reply(self):
        client = MagicMock()

        assert SlackNotifier(client).post_message("D1", "Message received.", "1.000100") is True

        client.chat_postMessage.assert_called_once_with(
            channel="D1", text="Message received.", thread_ts="1.000100"
        )
        client.chat_postEphemeral.assert_not_called()

    def test_unthreaded_reply(self):
        client = MagicMock()

        SlackNotifier(client).post_message("D1", "Hi there, <@U1>")

        client.chat_postMessage.assert_called_once_with(channel="D1", text="Hi there, <@U1>")

    def test_slack_error_returns_false(self, caplog):
        client = MagicMock()
        client.chat_postMessage.side_effect = SlackApiError(
            "failed", {"ok": False, "error": "not_in_channel"}
        )

        with caplog.at_level(logging.ERROR):
            assert SlackNotifier(client).post_message("D1", "hello") is False

        assert "not_in_channel" in caplog.text
