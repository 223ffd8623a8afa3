"""Host application collaborator.

The gateway does not own repositories, projects, teams or notifications.
Handlers report what happened through this interface and the host
application decides what it means. Every method is a no-op by default;
subclass and override what your application cares about.

Methods named trigger_* / analyze_* start long-running work. Handlers
dispatch them in the background and never wait for them.
"""
from __future__ import annotations
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class HostApplication:
    """Side effects of webhook handling on the host application."""

    # --- Repositories ---

    async def update_repository(self, platform: str, repository: dict[str, Any], branch: str) -> None:
        logger.debug("host_noop", call="update_repository", platform=platform, branch=branch)

    async def trigger_repository_analysis(self, repository_url: str, branch: str) -> None:
        logger.debug("host_noop", call="trigger_repository_analysis", repository_url=repository_url)

    async def notify_team_members(self, repository_name: str, event_type: str, data: dict[str, Any]) -> None:
        logger.debug("host_noop", call="notify_team_members", repository=repository_name, event_type=event_type)

    # --- Pull requests / issues ---

    async def update_pull_request(self, pull_request: dict[str, Any], repository: dict[str, Any]) -> None:
        pass

    async def trigger_code_review(self, pull_request: dict[str, Any]) -> None:
        pass

    async def recommend_reviewers(self, pull_request: dict[str, Any]) -> list[str]:
        return []

    async def update_issue(self, issue: dict[str, Any], repository: dict[str, Any]) -> None:
        pass

    async def suggest_issue_labels(self, issue: dict[str, Any]) -> list[str]:
        return []

    # --- Releases / deployments / workflows ---

    async def update_release(self, release: dict[str, Any], repository: dict[str, Any]) -> None:
        pass

    async def trigger_deployment_workflows(self, repository: dict[str, Any], release: dict[str, Any]) -> None:
        pass

    async def update_project_documentation(self, repository: dict[str, Any], release: dict[str, Any]) -> None:
        pass

    async def notify_release(self, repository_name: str, release: dict[str, Any]) -> None:
        pass

    async def update_deployment_status(self, deployment: dict[str, Any], repository: dict[str, Any]) -> None:
        pass

    async def trigger_post_deployment_analysis(self, deployment: dict[str, Any], repository: dict[str, Any]) -> None:
        pass

    async def update_workflow_status(self, workflow: dict[str, Any], repository: dict[str, Any]) -> None:
        pass

    async def analyze_workflow_performance(self, workflow: dict[str, Any]) -> None:
        pass

    # --- Projects / exports / teams ---

    async def update_project_status(self, project_id: str, status: str) -> None:
        pass

    async def trigger_project_analysis(self, project_id: str) -> None:
        pass

    async def update_export_job(self, job_id: str, status: str, download_url: str | None) -> None:
        pass

    async def update_team_member(self, team_id: str, member_id: str, status: str) -> None:
        pass

    async def notify_team(self, team_id: str, kind: str, payload: dict[str, Any]) -> None:
        pass

    async def notify_user(self, user_id: str, kind: str, payload: dict[str, Any]) -> None:
        """Queue a user-facing notification."""
        logger.debug("host_noop", call="notify_user", user_id=user_id, kind=kind)

    # --- Builder / deployment platforms ---

    async def update_external_app(self, platform: str, event_type: str, payload: dict[str, Any]) -> None:
        logger.debug("host_noop", call="update_external_app", platform=platform, event_type=event_type)
