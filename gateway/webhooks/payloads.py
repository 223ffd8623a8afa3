"""Typed webhook payloads, parsed only at the handler boundary.

PAYLOAD_MODELS is keyed by (source, event type). Unknown fields are kept so
handlers can pass the full object on to the host application.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from gateway.webhooks.models import WebhookEvent


class Payload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


# ---------------------------------------------------------------------------
# GitHub
# ---------------------------------------------------------------------------

class GitHubUser(Payload):
    login: str = "Unknown"


class GitHubRepository(Payload):
    id: Optional[int] = None
    name: str = ""
    full_name: str = "unknown/repo"
    clone_url: str = ""
    html_url: str = ""


class GitHubCommit(Payload):
    id: str = ""
    message: str = ""
    added: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)


class GitHubPusher(Payload):
    name: str = "Unknown"


class GitHubPushPayload(Payload):
    ref: str = ""
    repository: GitHubRepository = Field(default_factory=GitHubRepository)
    commits: list[GitHubCommit] = Field(default_factory=list)
    pusher: Optional[GitHubPusher] = None

    @property
    def branch(self) -> str:
        return self.ref.replace("refs/heads/", "", 1)


class GitHubPullRequest(Payload):
    number: Optional[int] = None
    title: str = "No title"
    html_url: str = ""
    changed_files: int = 0
    user: Optional[GitHubUser] = None


class GitHubPullRequestPayload(Payload):
    action: str = "unknown"
    pull_request: GitHubPullRequest = Field(default_factory=GitHubPullRequest)
    repository: GitHubRepository = Field(default_factory=GitHubRepository)


class GitHubIssue(Payload):
    number: Optional[int] = None
    title: str = "No title"
    body: Optional[str] = None
    html_url: str = ""
    user: Optional[GitHubUser] = None


class GitHubIssuesPayload(Payload):
    action: str = "unknown"
    issue: GitHubIssue = Field(default_factory=GitHubIssue)
    repository: GitHubRepository = Field(default_factory=GitHubRepository)


class GitHubRelease(Payload):
    tag_name: str = ""
    name: Optional[str] = None
    html_url: str = ""


class GitHubReleasePayload(Payload):
    action: str = "unknown"
    release: GitHubRelease = Field(default_factory=GitHubRelease)
    repository: GitHubRepository = Field(default_factory=GitHubRepository)


class GitHubDeploymentStatus(Payload):
    state: str = "unknown"
    environment: Optional[str] = None
    target_url: Optional[str] = None


class GitHubDeploymentStatusPayload(Payload):
    deployment_status: GitHubDeploymentStatus = Field(default_factory=GitHubDeploymentStatus)
    repository: GitHubRepository = Field(default_factory=GitHubRepository)


class GitHubWorkflowRun(Payload):
    name: str = ""
    status: str = "unknown"
    conclusion: Optional[str] = None


class GitHubWorkflowRunPayload(Payload):
    workflow_run: GitHubWorkflowRun = Field(default_factory=GitHubWorkflowRun)
    repository: GitHubRepository = Field(default_factory=GitHubRepository)


# ---------------------------------------------------------------------------
# GitLab
# ---------------------------------------------------------------------------

class GitLabProject(Payload):
    id: Optional[int] = None
    name: str = ""
    path_with_namespace: str = "unknown/project"
    git_http_url: str = ""
    web_url: str = ""


class GitLabPushPayload(Payload):
    ref: str = ""
    user_name: str = "Unknown"
    project: GitLabProject = Field(default_factory=GitLabProject)
    commits: list[GitHubCommit] = Field(default_factory=list)

    @property
    def branch(self) -> str:
        return self.ref.replace("refs/heads/", "", 1)


class GitLabMergeRequestAttributes(Payload):
    iid: Optional[int] = None
    title: str = "No title"
    action: str = "unknown"
    url: str = ""


class GitLabMergeRequestPayload(Payload):
    user: dict[str, Any] = Field(default_factory=dict)
    project: GitLabProject = Field(default_factory=GitLabProject)
    object_attributes: GitLabMergeRequestAttributes = Field(
        default_factory=GitLabMergeRequestAttributes
    )


# ---------------------------------------------------------------------------
# Internal events
# ---------------------------------------------------------------------------

class ProjectGeneratedPayload(Payload):
    project_id: str = Field(alias="projectId")
    user_id: str = Field(alias="userId")


class ExportCompletedPayload(Payload):
    job_id: str = Field(alias="jobId")
    user_id: str = Field(alias="userId")
    download_url: Optional[str] = Field(default=None, alias="downloadUrl")


class TeamMemberAddedPayload(Payload):
    team_id: str = Field(alias="teamId")
    member_id: str = Field(alias="memberId")


class AnalysisCompletedPayload(Payload):
    project_id: Optional[str] = Field(default=None, alias="projectId")
    user_id: Optional[str] = Field(default=None, alias="userId")


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

PAYLOAD_MODELS: dict[tuple[str, str], type[Payload]] = {
    ("github", "push"): GitHubPushPayload,
    ("github", "pull_request"): GitHubPullRequestPayload,
    ("github", "issues"): GitHubIssuesPayload,
    ("github", "release"): GitHubReleasePayload,
    ("github", "deployment_status"): GitHubDeploymentStatusPayload,
    ("github", "workflow_run"): GitHubWorkflowRunPayload,
    ("gitlab", "Push Hook"): GitLabPushPayload,
    ("gitlab", "Merge Request Hook"): GitLabMergeRequestPayload,
    ("internal", "project_generated"): ProjectGeneratedPayload,
    ("internal", "export_completed"): ExportCompletedPayload,
    ("internal", "team_member_added"): TeamMemberAddedPayload,
    ("internal", "analysis_completed"): AnalysisCompletedPayload,
}


def parse_payload(event: WebhookEvent) -> Payload:
    """Parse an event body into its typed model (generic Payload if unmapped).

    Raises pydantic.ValidationError for malformed or mismatched bodies.
    """
    model = PAYLOAD_MODELS.get((event.source, event.type), Payload)
    return model.model_validate_json(event.payload)
