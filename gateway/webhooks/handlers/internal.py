"""Handlers for events raised by the host application itself."""
from __future__ import annotations

from gateway.webhooks.handlers.dispatch import fire_and_forget
from gateway.webhooks.handlers.host import HostApplication
from gateway.webhooks.models import ProcessingResult, WebhookEvent
from gateway.webhooks.payloads import (
    AnalysisCompletedPayload,
    ExportCompletedPayload,
    ProjectGeneratedPayload,
    TeamMemberAddedPayload,
)


async def handle_project_generated(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    payload = ProjectGeneratedPayload.model_validate_json(event.payload)
    actions: list[str] = []

    await host.update_project_status(payload.project_id, "generated")
    actions.append("project_status_updated")

    fire_and_forget(host.trigger_project_analysis(payload.project_id), "internal.project.analysis")
    actions.append("analysis_triggered")

    await host.notify_user(payload.user_id, "project_ready", payload.model_dump(by_alias=True))
    actions.append("user_notified")

    return ProcessingResult(
        success=True, message="Project generation completed successfully", actions=actions
    )


async def handle_export_completed(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    payload = ExportCompletedPayload.model_validate_json(event.payload)
    actions: list[str] = []

    await host.update_export_job(payload.job_id, "completed", payload.download_url)
    actions.append("export_job_updated")

    await host.notify_user(payload.user_id, "export_ready", payload.model_dump(by_alias=True))
    actions.append("user_notified")

    return ProcessingResult(success=True, message="Export completed successfully", actions=actions)


async def handle_team_member_added(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    payload = TeamMemberAddedPayload.model_validate_json(event.payload)
    data = payload.model_dump(by_alias=True)
    actions: list[str] = []

    await host.update_team_member(payload.team_id, payload.member_id, "active")
    actions.append("member_status_updated")

    await host.notify_user(payload.member_id, "welcome_to_team", data)
    actions.append("welcome_sent")

    await host.notify_team(payload.team_id, "member_joined", data)
    actions.append("team_notified")

    return ProcessingResult(success=True, message="Team member added successfully", actions=actions)


async def handle_analysis_completed(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    payload = AnalysisCompletedPayload.model_validate_json(event.payload)
    actions: list[str] = []

    if payload.user_id:
        await host.notify_user(payload.user_id, "analysis_ready", payload.model_dump(by_alias=True))
        actions.append("user_notified")

    return ProcessingResult(success=True, message="Analysis completed", actions=actions)


HANDLERS = {
    "project_generated": handle_project_generated,
    "export_completed": handle_export_completed,
    "team_member_added": handle_team_member_added,
    "analysis_completed": handle_analysis_completed,
}
