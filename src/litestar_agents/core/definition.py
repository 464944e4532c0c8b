"""Workflow step and definition structures.

A workflow definition is a named, ordered list of steps. Each step names the
agent that owns it, the task type to create for that agent, and a payload
template merged into every task dispatched for the step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = ["WorkflowDefinition", "WorkflowStep"]


@dataclass(frozen=True)
class WorkflowStep:
    """A single step of a workflow definition.

    Attributes:
        agent: Name of the agent that executes the step.
        task_type: Task type created for that agent.
        payload: Template merged into the dispatched task's payload.
        requires_approval: Whether continuation waits on an approval decision
            instead of the task's completion.
        priority: Priority of the dispatched task (1 highest, 5 lowest).

    Example:
        >>> step = WorkflowStep(agent="seo", task_type="create_content_brief")
    """

    agent: str
    task_type: str
    payload: dict[str, Any] = field(default_factory=dict)
    requires_approval: bool = False
    priority: int = 3

    def build_payload(self, instance_id: str, workflow_data: dict[str, Any], step_index: int) -> dict[str, Any]:
        """Merge the step template with the workflow context.

        Args:
            instance_id: ID of the workflow instance dispatching the step.
            workflow_data: The instance's accumulated payload.
            step_index: Position of this step in the definition.

        Returns:
            The payload for the step's task.
        """
        return {
            **self.payload,
            "workflow_id": instance_id,
            "workflow_data": workflow_data,
            "workflow_step": step_index,
        }


@dataclass
class WorkflowDefinition:
    """Declarative workflow structure.

    Definitions are not persisted. They are rebuilt at process start and are
    immutable for the lifetime of a run.

    Attributes:
        workflow_type: Registry key, stored on every instance.
        name: Human-readable name.
        steps: Ordered steps; instances walk them by index.
        description: Optional description of the workflow's purpose.

    Example:
        >>> definition = WorkflowDefinition(
        ...     workflow_type="new_blog_post",
        ...     name="New Blog Post",
        ...     steps=[
        ...         WorkflowStep(agent="seo", task_type="create_content_brief"),
        ...         WorkflowStep(agent="content", task_type="write_draft"),
        ...     ],
        ... )
    """

    workflow_type: str
    name: str
    steps: list[WorkflowStep] = field(default_factory=list)
    description: str | None = None

    @property
    def total_steps(self) -> int:
        """Number of steps in the definition."""
        return len(self.steps)

    def get_step(self, index: int) -> WorkflowStep | None:
        """Return the step at ``index`` or None when the cursor is exhausted."""
        if 0 <= index < len(self.steps):
            return self.steps[index]
        return None

    def validate(self, known_agents: frozenset[str] | None = None) -> list[str]:
        """Validate the definition.

        Args:
            known_agents: Agent names steps may target. When None, targets are
                not checked.

        Returns:
            List of validation error messages (empty if valid).
        """
        errors: list[str] = []

        if not self.workflow_type:
            errors.append("Workflow type must not be empty")

        for index, step in enumerate(self.steps):
            if not step.task_type:
                errors.append(f"Step {index} has no task type")
            if known_agents is not None and step.agent not in known_agents:
                errors.append(f"Step {index} targets unknown agent '{step.agent}'")
            if not 1 <= step.priority <= 5:
                errors.append(f"Step {index} priority {step.priority} is outside 1..5")

        return errors
