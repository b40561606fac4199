"""Tests for the task forwarder."""

import json
from unittest.mock import MagicMock

import pytest

from review_triage_bot.config import Config
from review_triage_bot.errors import PayloadError, TaskCreationError
from review_triage_bot.forwarder import TASK_FAILED_TEXT, TaskForwarder, build_task_request
from review_triage_bot.models import CreatedTask, PendingTaskRequest

CONFIG = Config(asana_workspace_id="111", asana_project_id="222")


def make_request() -> PendingTaskRequest:
    return PendingTaskRequest(title="t", notes="n", workspace_id="111", project_id="222")


def make_task() -> CreatedTask:
    return CreatedTask(gid="333", name="t", permalink_url="https://app.asana.com/0/222/333")


class TestBuildTaskRequest:
    def test_from_button_value(self):
        value = json.dumps({"id": "r1", "text": "The app crashes on login", "username": "ann"})

        request = build_task_request(value, "support", "ops-jane", CONFIG)

        assert request.title == "Negative review from @ann: The app crashes on login"
        assert "The app crashes on login" in request.notes
        assert "Review ID: r1" in request.notes
        assert "Forwarded by ops-jane from #support" in request.notes
        assert request.workspace_id == "111"
        assert request.project_id == "222"

    def test_long_text_shortened_in_title(self):
        value = json.dumps({"id": "r1", "text": "x" * 500, "username": ""})

        request = build_task_request(value, "support", "jane", CONFIG)

        assert request.title.startswith("Negative review from an anonymous user: ")
        assert len(request.title) < 140
        assert "x" * 500 in request.notes

    @pytest.mark.parametrize("value", ["", "nope", json.dumps({"text": "no id"})])
    def test_bad_value(self, value):
        with pytest.raises(PayloadError):
            build_task_request(value, "c", "u", CONFIG)


class TestCreateTask:
    def test_success_sends_confirmation_card(self):
        tracker = MagicMock()
        tracker.create_task.return_value = make_task()
        notifier = MagicMock()
        request = make_request()

        assert TaskForwarder(tracker, notifier).create_task(request, "C1", "U1") is True

        tracker.create_task.assert_called_once_with(request)
        call = notifier.post_ephemeral.call_args
        assert call.args[:2] == ("C1", "U1")
        assert "https://app.asana.com/0/222/333" in json.dumps(call.kwargs["blocks"])

    def test_failure_sends_ephemeral_notice_without_retry(self):
        tracker = MagicMock()
        tracker.create_task.side_effect = TaskCreationError("500")
        notifier = MagicMock()

        assert TaskForwarder(tracker, notifier).create_task(make_request(), "C1", "U1") is False

        assert tracker.create_task.call_count == 1
        notifier.post_ephemeral.assert_called_once_with("C1", "U1", TASK_FAILED_TEXT)
