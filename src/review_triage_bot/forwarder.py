"""Forward an operator-selected review to the task tracker."""

import json
import logging

from review_triage_bot.asana_client import AsanaClient
from review_triage_bot.blocks import task_confirmation_card
from review_triage_bot.config import Config
from review_triage_bot.errors import PayloadError, TaskCreationError
from review_triage_bot.models import PendingTaskRequest, RawFeedItem
from review_triage_bot.notifier import SlackNotifier

logger = logging.getLogger(__name__)

TASK_FAILED_TEXT = "Failed to create task. Please try again."
TITLE_LENGTH = 80


def build_task_request(
    value: str, channel_name: str, user_name: str, config: Config
) -> PendingTaskRequest:
    """Turn a "Create task" button value into a task request.

    The value is the JSON-encoded review body attached to the button when
    the card was rendered.
    """
    try:
        data = json.loads(value)
    except (TypeError, json.JSONDecodeError) as exc:
        raise PayloadError(f"button value is not valid JSON: {exc}")
    item = RawFeedItem.from_dict(data)

    author = f"@{item.username}" if item.username else "an anonymous user"
    snippet = " ".join(item.text.split())
    if len(snippet) > TITLE_LENGTH:
        snippet = snippet[: TITLE_LENGTH - 1] + "…"
    title = f"Negative review from {author}: {snippet}" if snippet else f"Negative review from {author}"

    notes = (
        f"{item.text}\n\n"
        f"Review ID: {item.id}\n"
        f"Author: {author}\n"
        f"Forwarded by {user_name} from #{channel_name}"
    )
    return PendingTaskRequest(
        title=title,
        notes=notes,
        workspace_id=config.asana_workspace_id,
        project_id=config.asana_project_id,
    )


class TaskForwarder:
    """Creates the task and tells the operator how it went.

    Failures are terminal: no retry, the operator clicks the button again.
    """

    def __init__(self, tracker: AsanaClient, notifier: SlackNotifier) -> None:
        self._tracker = tracker
        self._notifier = notifier

    def create_task(self, request: PendingTaskRequest, channel: str, user: str) -> bool:
        try:
            task = self._tracker.create_task(request)
        except TaskCreationError as exc:
            logger.error("Task creation failed for %s in %s: %s", user, channel, exc)
            self._notifier.post_ephemeral(channel, user, TASK_FAILED_TEXT)
            return False

        self._notifier.post_ephemeral(
            channel,
            user,
            f"Task created: {task.name} {task.permalink_url}",
            blocks=task_confirmation_card(task),
        )
        return True
