"""GitHub webhook handlers.

Each handler parses its payload, reports to the host application and
returns the labels of the actions it took, in order.
"""
from __future__ import annotations

from gateway.webhooks.handlers.dispatch import fire_and_forget
from gateway.webhooks.handlers.host import HostApplication
from gateway.webhooks.models import ProcessingResult, WebhookEvent
from gateway.webhooks.payloads import (
    GitHubDeploymentStatusPayload,
    GitHubIssuesPayload,
    GitHubPullRequestPayload,
    GitHubPushPayload,
    GitHubReleasePayload,
    GitHubWorkflowRunPayload,
)

SIGNIFICANT_EXTENSIONS = (".js", ".ts", ".tsx", ".jsx", ".py", ".java", ".php", ".go", ".rs")
SIGNIFICANT_FILES = ("package.json", "requirements.txt", "Dockerfile", ".env")


def has_significant_changes(files: list[str]) -> bool:
    """True if any touched file is source code or a dependency/config manifest."""
    return any(
        f.endswith(SIGNIFICANT_EXTENSIONS) or any(name in f for name in SIGNIFICANT_FILES)
        for f in files
    )


async def handle_push(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    payload = GitHubPushPayload.model_validate_json(event.payload)
    repository = payload.repository.model_dump()
    branch = payload.branch
    actions: list[str] = []

    await host.update_repository("github", repository, branch)
    actions.append("repository_updated")

    touched = [f for c in payload.commits for f in (*c.added, *c.modified)]
    if payload.commits and has_significant_changes(touched):
        fire_and_forget(
            host.trigger_repository_analysis(payload.repository.clone_url, branch),
            "github.push.analysis",
        )
        actions.append("analysis_triggered")

    await host.notify_team_members(
        payload.repository.full_name,
        "push",
        {
            "branch": branch,
            "commits": len(payload.commits),
            "pusher": payload.pusher.name if payload.pusher else "Unknown",
        },
    )
    actions.append("team_notified")

    return ProcessingResult(
        success=True,
        message=f"Processed {len(payload.commits)} commits on {branch} branch",
        actions=actions,
    )


async def handle_pull_request(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    payload = GitHubPullRequestPayload.model_validate_json(event.payload)
    pr = payload.pull_request
    pr_data = pr.model_dump()
    actions: list[str] = []

    await host.update_pull_request(pr_data, payload.repository.model_dump())
    actions.append("pr_updated")

    if payload.action in ("opened", "synchronize"):
        fire_and_forget(host.trigger_code_review(pr_data), "github.pull_request.review")
        actions.append("code_review_triggered")

    if payload.action == "opened":
        reviewers = await host.recommend_reviewers(pr_data)
        if reviewers:
            actions.append("reviewers_assigned")

    await host.notify_team_members(
        payload.repository.full_name,
        "pull_request",
        {
            "action": payload.action,
            "title": pr.title,
            "author": pr.user.login if pr.user else "Unknown",
            "url": pr.html_url,
        },
    )
    actions.append("team_notified")

    return ProcessingResult(
        success=True,
        message=f"Processed PR {payload.action}: {pr.title}",
        actions=actions,
    )


async def handle_issues(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    payload = GitHubIssuesPayload.model_validate_json(event.payload)
    issue = payload.issue
    issue_data = issue.model_dump()
    actions: list[str] = []

    await host.update_issue(issue_data, payload.repository.model_dump())
    actions.append("issue_updated")

    if payload.action == "opened":
        labels = await host.suggest_issue_labels(issue_data)
        if labels:
            actions.append("labels_suggested")

    await host.notify_team_members(
        payload.repository.full_name,
        "issue",
        {
            "action": payload.action,
            "title": issue.title,
            "author": issue.user.login if issue.user else "Unknown",
            "url": issue.html_url,
        },
    )
    actions.append("team_notified")

    return ProcessingResult(
        success=True,
        message=f"Processed issue {payload.action}: {issue.title}",
        actions=actions,
    )


async def handle_release(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    payload = GitHubReleasePayload.model_validate_json(event.payload)
    release = payload.release.model_dump()
    repository = payload.repository.model_dump()
    actions: list[str] = []

    if payload.action == "published":
        await host.update_release(release, repository)
        actions.append("release_updated")

        fire_and_forget(
            host.trigger_deployment_workflows(repository, release),
            "github.release.deploy",
        )
        actions.append("deployment_triggered")

        await host.update_project_documentation(repository, release)
        actions.append("documentation_updated")

        await host.notify_release(payload.repository.full_name, release)
        actions.append("stakeholders_notified")

    return ProcessingResult(
        success=True,
        message=f"Processed release {payload.action}: {payload.release.tag_name}",
        actions=actions,
    )


async def handle_deployment_status(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    payload = GitHubDeploymentStatusPayload.model_validate_json(event.payload)
    status = payload.deployment_status
    deployment = status.model_dump()
    repository = payload.repository.model_dump()
    actions: list[str] = []

    await host.update_deployment_status(deployment, repository)
    actions.append("deployment_status_updated")

    if status.state == "success":
        fire_and_forget(
            host.trigger_post_deployment_analysis(deployment, repository),
            "github.deployment.analysis",
        )
        actions.append("post_deployment_analysis")

    await host.notify_team_members(
        payload.repository.full_name,
        "deployment",
        {"state": status.state, "environment": status.environment, "url": status.target_url},
    )
    actions.append("team_notified")

    return ProcessingResult(
        success=True,
        message=f"Processed deployment status: {status.state}",
        actions=actions,
    )


async def handle_workflow_run(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    payload = GitHubWorkflowRunPayload.model_validate_json(event.payload)
    workflow = payload.workflow_run
    workflow_data = workflow.model_dump()
    actions: list[str] = []

    await host.update_workflow_status(workflow_data, payload.repository.model_dump())
    actions.append("workflow_status_updated")

    if workflow.status == "completed":
        fire_and_forget(host.analyze_workflow_performance(workflow_data), "github.workflow.analysis")
        actions.append("workflow_analyzed")

    return ProcessingResult(
        success=True,
        message=f"Processed workflow: {workflow.name} - {workflow.status}",
        actions=actions,
    )


HANDLERS = {
    "push": handle_push,
    "pull_request": handle_pull_request,
    "issues": handle_issues,
    "release": handle_release,
    "deployment_status": handle_deployment_status,
    "workflow_run": handle_workflow_run,
}
