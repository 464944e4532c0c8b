"""Tests for workflow definitions and the built-in workflows."""

from __future__ import annotations

import pytest

from litestar_agents.agents.workflows import BUILTIN_WORKFLOWS, new_ad_campaign, new_blog_post
from litestar_agents.core.definition import WorkflowDefinition, WorkflowStep
from litestar_agents.core.types import AGENT_NAMES


@pytest.mark.unit
class TestWorkflowStep:
    """Tests for WorkflowStep."""

    def test_defaults(self) -> None:
        step = WorkflowStep(agent="seo", task_type="create_content_brief")

        assert step.payload == {}
        assert step.requires_approval is False
        assert step.priority == 3

    def test_build_payload_merges_context(self) -> None:
        step = WorkflowStep(agent="research", task_type="gather_sources", payload={"depth": 2})

        payload = step.build_payload("instance-1", {"topic": "Savings"}, 1)

        assert payload == {
            "depth": 2,
            "workflow_id": "instance-1",
            "workflow_data": {"topic": "Savings"},
            "workflow_step": 1,
        }

    def test_build_payload_context_wins_over_template(self) -> None:
        step = WorkflowStep(agent="seo", task_type="audit", payload={"workflow_step": 99})

        assert step.build_payload("id", {}, 0)["workflow_step"] == 0


@pytest.mark.unit
class TestWorkflowDefinition:
    """Tests for WorkflowDefinition."""

    def test_get_step(self, two_step_definition: WorkflowDefinition) -> None:
        assert two_step_definition.total_steps == 2
        assert two_step_definition.get_step(1).task_type == "write_summary"
        assert two_step_definition.get_step(2) is None
        assert two_step_definition.get_step(-1) is None

    def test_validate_valid(self, two_step_definition: WorkflowDefinition) -> None:
        assert two_step_definition.validate(AGENT_NAMES) == []

    def test_validate_unknown_agent(self) -> None:
        definition = WorkflowDefinition(
            workflow_type="bad",
            name="Bad",
            steps=[WorkflowStep(agent="legal", task_type="review")],
        )

        errors = definition.validate(AGENT_NAMES)

        assert errors == ["Step 0 targets unknown agent 'legal'"]
        assert definition.validate() == []

    def test_validate_priority_and_type(self) -> None:
        definition = WorkflowDefinition(
            workflow_type="",
            name="Broken",
            steps=[WorkflowStep(agent="seo", task_type="", priority=9)],
        )

        errors = definition.validate()

        assert len(errors) == 3

    def test_empty_definition_is_valid(self) -> None:
        assert WorkflowDefinition(workflow_type="noop", name="Noop").validate(AGENT_NAMES) == []


@pytest.mark.unit
class TestBuiltinWorkflows:
    """Tests for the workflows registered at process start."""

    def test_all_target_known_agents(self) -> None:
        for factory in BUILTIN_WORKFLOWS:
            assert factory().validate(AGENT_NAMES) == []

    def test_new_blog_post_shape(self) -> None:
        definition = new_blog_post()

        assert [step.agent for step in definition.steps] == ["seo", "content", "content", "content"]
        assert definition.steps[-1].requires_approval is True

    def test_new_ad_campaign_waits_for_compliance(self) -> None:
        definition = new_ad_campaign()

        assert [step.requires_approval for step in definition.steps] == [False, True, False]
