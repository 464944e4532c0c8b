"""Built-in workflow definitions."""

from __future__ import annotations

from litestar_agents.core.definition import WorkflowDefinition, WorkflowStep

__all__ = ["BUILTIN_WORKFLOWS", "daily_report", "new_ad_campaign", "new_blog_post"]


def new_blog_post() -> WorkflowDefinition:
    """Brief, outline and draft a post, then hold it for compliance sign-off."""
    return WorkflowDefinition(
        workflow_type="new_blog_post",
        name="New Blog Post",
        steps=[
            WorkflowStep(agent="seo", task_type="create_content_brief"),
            WorkflowStep(agent="content", task_type="create_outline"),
            WorkflowStep(agent="content", task_type="write_draft"),
            WorkflowStep(agent="content", task_type="compliance_check", requires_approval=True),
        ],
    )


def new_ad_campaign() -> WorkflowDefinition:
    """Write ad copy, clear compliance, then build the campaign."""
    return WorkflowDefinition(
        workflow_type="new_ad_campaign",
        name="New Ad Campaign",
        steps=[
            WorkflowStep(agent="creative", task_type="generate_ad_copy"),
            WorkflowStep(agent="creative", task_type="compliance_check", requires_approval=True),
            WorkflowStep(agent="paid_media", task_type="create_campaign"),
        ],
    )


def daily_report() -> WorkflowDefinition:
    return WorkflowDefinition(
        workflow_type="daily_report",
        name="Daily Report",
        steps=[
            WorkflowStep(agent="analytics", task_type="sync_google_analytics"),
            WorkflowStep(agent="paid_media", task_type="sync_google_ads"),
            WorkflowStep(agent="analytics", task_type="calculate_daily_metrics"),
            WorkflowStep(agent="analytics", task_type="generate_daily_digest"),
        ],
    )


BUILTIN_WORKFLOWS = (new_blog_post, new_ad_campaign, daily_report)
"""Factories for the definitions registered at process start."""
