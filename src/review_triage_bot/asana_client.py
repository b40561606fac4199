"""Minimal Asana REST client for creating review follow-up tasks."""

import logging
from datetime import datetime

import requests

from review_triage_bot.errors import TaskCreationError
from review_triage_bot.models import CreatedTask, PendingTaskRequest

logger = logging.getLogger(__name__)

TASK_OPT_FIELDS = ",".join(
    [
        "name",
        "notes",
        "permalink_url",
        "created_at",
        "workspace.name",
        "projects.name",
        "memberships.project.name",
        "memberships.section.name",
    ]
)


def _parse_created_at(value) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _section_name(data: dict, project_gid: str) -> str:
    for membership in data.get("memberships") or []:
        project = membership.get("project") or {}
        section = membership.get("section") or {}
        if project.get("gid") in (None, project_gid) and section.get("name"):
            return section["name"]
    return ""


def _project_name(data: dict, project_gid: str) -> str:
    projects = data.get("projects") or []
    for project in projects:
        if project.get("gid") == project_gid:
            return project.get("name", "")
    return projects[0].get("name", "") if projects else ""


class AsanaClient:
    def __init__(
        self,
        access_token: str,
        api_url: str = "https://app.asana.com/api/1.0",
        timeout: int = 10,
    ) -> None:
        self._access_token = access_token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def create_task(self, request: PendingTaskRequest) -> CreatedTask:
        """Create a task in the configured project and return its metadata.

        Any transport failure, non-2xx status or unexpected response body
        raises TaskCreationError.
        """
        body = {
            "data": {
                "name": request.title,
                "notes": request.notes,
                "workspace": request.workspace_id,
                "projects": [request.project_id],
            }
        }
        try:
            resp = requests.post(
                f"{self.api_url}/tasks",
                json=body,
                params={"opt_fields": TASK_OPT_FIELDS},
                headers={
                    "Authorization": f"Bearer {self._access_token}",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()["data"]
            task = CreatedTask(
                gid=str(data["gid"]),
                name=data.get("name") or request.title,
                permalink_url=data["permalink_url"],
                workspace=(data.get("workspace") or {}).get("name", ""),
                project=_project_name(data, request.project_id),
                section=_section_name(data, request.project_id),
                created_at=_parse_created_at(data.get("created_at")),
                notes=data.get("notes") or request.notes,
            )
        except requests.RequestException as exc:
            raise TaskCreationError(f"Asana request failed: {exc}") from exc
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise TaskCreationError(f"unexpected Asana response: {exc}") from exc

        logger.info("Created Asana task %s", task.gid)
        return task
