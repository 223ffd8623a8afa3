"""GitLab webhook handlers (push and merge request hooks)."""
from __future__ import annotations

from gateway.webhooks.handlers.dispatch import fire_and_forget
from gateway.webhooks.handlers.github import has_significant_changes
from gateway.webhooks.handlers.host import HostApplication
from gateway.webhooks.models import ProcessingResult, WebhookEvent
from gateway.webhooks.payloads import GitLabMergeRequestPayload, GitLabPushPayload


async def handle_push_hook(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    payload = GitLabPushPayload.model_validate_json(event.payload)
    project = payload.project
    branch = payload.branch
    actions: list[str] = []

    await host.update_repository("gitlab", project.model_dump(), branch)
    actions.append("repository_updated")

    touched = [f for c in payload.commits for f in (*c.added, *c.modified)]
    if payload.commits and has_significant_changes(touched):
        fire_and_forget(
            host.trigger_repository_analysis(project.git_http_url, branch),
            "gitlab.push.analysis",
        )
        actions.append("analysis_triggered")

    await host.notify_team_members(
        project.path_with_namespace,
        "push",
        {"branch": branch, "commits": len(payload.commits), "pusher": payload.user_name},
    )
    actions.append("team_notified")

    return ProcessingResult(
        success=True,
        message=f"Processed {len(payload.commits)} commits on {branch} branch",
        actions=actions,
    )


async def handle_merge_request_hook(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    payload = GitLabMergeRequestPayload.model_validate_json(event.payload)
    mr = payload.object_attributes
    mr_data = mr.model_dump()
    actions: list[str] = []

    await host.update_pull_request(mr_data, payload.project.model_dump())
    actions.append("pr_updated")

    # GitLab says "open"/"update" where GitHub says "opened"/"synchronize"
    if mr.action in ("open", "update"):
        fire_and_forget(host.trigger_code_review(mr_data), "gitlab.merge_request.review")
        actions.append("code_review_triggered")

    await host.notify_team_members(
        payload.project.path_with_namespace,
        "pull_request",
        {
            "action": mr.action,
            "title": mr.title,
            "author": payload.user.get("username", "Unknown"),
            "url": mr.url,
        },
    )
    actions.append("team_notified")

    return ProcessingResult(
        success=True,
        message=f"Processed merge request {mr.action}: {mr.title}",
        actions=actions,
    )


HANDLERS = {
    "Push Hook": handle_push_hook,
    "Merge Request Hook": handle_merge_request_hook,
}
