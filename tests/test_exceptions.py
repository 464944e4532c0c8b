"""Tests for exception hierarchy."""

from __future__ import annotations

from uuid import uuid4

import pytest

from litestar_agents import exceptions
from litestar_agents.exceptions import (
    ApprovalAlreadyResolvedError,
    InvalidPayloadError,
    InvalidScheduleError,
    InvalidTransitionError,
    OrchestrationError,
    UnknownTaskTypeError,
    WorkflowAlreadyCompletedError,
    WorkflowValidationError,
)


@pytest.mark.unit
class TestOrchestrationError:
    """Tests for the base OrchestrationError exception."""

    def test_base_exception(self) -> None:
        with pytest.raises(OrchestrationError, match="test"):
            raise OrchestrationError("test")

    @pytest.mark.parametrize("name", [name for name in exceptions.__all__ if name != "OrchestrationError"])
    def test_every_error_inherits_base(self, name: str) -> None:
        assert issubclass(getattr(exceptions, name), OrchestrationError)


@pytest.mark.unit
class TestErrorDetails:
    """Tests for the attributes and messages carried by each error."""

    def test_workflow_validation_error(self) -> None:
        error = WorkflowValidationError(["Step 0 targets unknown agent 'legal'", "Step 1 has no task type"])

        assert len(error.errors) == 2
        assert "unknown agent 'legal'; Step 1" in str(error)

    def test_workflow_already_completed_error(self) -> None:
        instance_id = uuid4()
        error = WorkflowAlreadyCompletedError(instance_id, "completed")

        assert error.instance_id == instance_id
        assert str(error) == f"Workflow '{instance_id}' is already completed"

    def test_invalid_transition_error(self) -> None:
        error = InvalidTransitionError("task-1", "complete", "in_progress")

        assert error.from_status == "complete"
        assert error.to_status == "in_progress"
        assert "'complete' to 'in_progress'" in str(error)

    def test_approval_already_resolved_error(self) -> None:
        error = ApprovalAlreadyResolvedError("approval-1", "rejected")

        assert error.status == "rejected"

    def test_unknown_task_type_error(self) -> None:
        error = UnknownTaskTypeError("seo", "translate")

        assert str(error) == "Agent 'seo' has no handler for task type 'translate'"

    def test_invalid_payload_error(self) -> None:
        error = InvalidPayloadError("start_workflow", ["workflow_type"])

        assert error.missing == ["workflow_type"]
        assert "workflow_type" in str(error)

    def test_invalid_schedule_error(self) -> None:
        error = InvalidScheduleError("seo:audit", "every day")

        assert error.schedule == "every day"
        assert "seo:audit" in str(error)
