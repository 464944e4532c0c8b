"""Exception hierarchy for litestar-agents."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

__all__ = (
    "ApprovalAlreadyResolvedError",
    "ApprovalNotFoundError",
    "InvalidPayloadError",
    "InvalidScheduleError",
    "InvalidTransitionError",
    "JobNotFoundError",
    "OrchestrationError",
    "TaskNotFoundError",
    "UnknownAgentError",
    "UnknownTaskTypeError",
    "WorkflowAlreadyCompletedError",
    "WorkflowInstanceNotFoundError",
    "WorkflowNotFoundError",
    "WorkflowValidationError",
)


class OrchestrationError(Exception):
    """Base exception for all litestar-agents errors.

    All exceptions raised by litestar-agents inherit from this class, so callers
    can catch every orchestration-related error with a single except clause.
    Store faults are not wrapped; they surface as the SQLAlchemy errors raised
    by the session.
    """


class WorkflowNotFoundError(OrchestrationError):
    """Raised when a workflow type is not present in the registry.

    This is a configuration fault: the workflow was never registered for this
    process. It is never retried.

    Attributes:
        workflow_type: The workflow type that was not found.
    """

    def __init__(self, workflow_type: str) -> None:
        """Initialize the exception with the workflow type.

        Args:
            workflow_type: The workflow type that was not found.
        """
        self.workflow_type = workflow_type
        super().__init__(f"Workflow type '{workflow_type}' not found")


class WorkflowInstanceNotFoundError(OrchestrationError):
    """Raised when a workflow instance is not found.

    Attributes:
        instance_id: The ID of the workflow instance that was not found.
    """

    def __init__(self, instance_id: str | UUID) -> None:
        """Initialize the exception with instance details.

        Args:
            instance_id: The ID of the workflow instance that was not found.
        """
        self.instance_id = instance_id
        super().__init__(f"Workflow instance '{instance_id}' not found")


class WorkflowValidationError(OrchestrationError):
    """Raised when workflow definition validation fails.

    This occurs during registration when a step targets an agent the registry
    does not know, or when a step is otherwise malformed.

    Attributes:
        errors: List of validation error messages.
    """

    def __init__(self, errors: list[str]) -> None:
        """Initialize the exception with validation errors.

        Args:
            errors: List of validation error messages.
        """
        self.errors = errors
        super().__init__(f"Workflow validation failed: {'; '.join(errors)}")


class WorkflowAlreadyCompletedError(OrchestrationError):
    """Raised when trying to pause or resume a finished workflow.

    Attributes:
        instance_id: The ID of the workflow instance.
        status: The current terminal status of the workflow.
    """

    def __init__(self, instance_id: str | UUID, status: str) -> None:
        """Initialize the exception with workflow state details.

        Args:
            instance_id: The ID of the workflow instance.
            status: The current terminal status of the workflow.
        """
        self.instance_id = instance_id
        self.status = status
        super().__init__(f"Workflow '{instance_id}' is already {status}")


class InvalidTransitionError(OrchestrationError):
    """Raised when a status transition is not allowed.

    Attributes:
        entity_id: The ID of the task or approval being transitioned.
        from_status: The current status.
        to_status: The requested status.
    """

    def __init__(self, entity_id: str | UUID, from_status: str, to_status: str) -> None:
        """Initialize the exception with transition details.

        Args:
            entity_id: The ID of the task or approval being transitioned.
            from_status: The current status.
            to_status: The requested status.
        """
        self.entity_id = entity_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid transition for '{entity_id}' from '{from_status}' to '{to_status}'")


class TaskNotFoundError(OrchestrationError):
    """Raised when an agent task is not found.

    Attributes:
        task_id: The ID of the task that was not found.
    """

    def __init__(self, task_id: str | UUID) -> None:
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' not found")


class ApprovalNotFoundError(OrchestrationError):
    """Raised when an approval item is not found.

    Attributes:
        approval_id: The ID of the approval that was not found.
    """

    def __init__(self, approval_id: str | UUID) -> None:
        self.approval_id = approval_id
        super().__init__(f"Approval '{approval_id}' not found")


class ApprovalAlreadyResolvedError(OrchestrationError):
    """Raised when resolving an approval that has already left ``pending``.

    Attributes:
        approval_id: The ID of the approval.
        status: The status the approval was resolved to.
    """

    def __init__(self, approval_id: str | UUID, status: str) -> None:
        self.approval_id = approval_id
        self.status = status
        super().__init__(f"Approval '{approval_id}' is already {status}")


class UnknownTaskTypeError(OrchestrationError):
    """Raised when an agent receives a task type it has no handler for.

    Attributes:
        agent: The agent that received the task.
        task_type: The unhandled task type.
    """

    def __init__(self, agent: str, task_type: str) -> None:
        self.agent = agent
        self.task_type = task_type
        super().__init__(f"Agent '{agent}' has no handler for task type '{task_type}'")


class InvalidPayloadError(OrchestrationError):
    """Raised when a task payload cannot be decoded into its typed shape.

    Attributes:
        task_type: The task type whose payload failed to decode.
        missing: Keys that were required but absent.
    """

    def __init__(self, task_type: str, missing: list[str]) -> None:
        self.task_type = task_type
        self.missing = missing
        super().__init__(f"Payload for task type '{task_type}' is missing: {', '.join(missing)}")


class InvalidScheduleError(OrchestrationError):
    """Raised when a job is registered with an invalid cron expression.

    Attributes:
        job_name: The job being registered.
        schedule: The rejected cron expression.
    """

    def __init__(self, job_name: str, schedule: str) -> None:
        self.job_name = job_name
        self.schedule = schedule
        super().__init__(f"Invalid cron expression for job '{job_name}': {schedule}")


class JobNotFoundError(OrchestrationError):
    """Raised when a scheduler operation names a job that is not registered.

    Attributes:
        job_name: The name of the missing job.
    """

    def __init__(self, job_name: str) -> None:
        self.job_name = job_name
        super().__init__(f"Job '{job_name}' not found")


class UnknownAgentError(OrchestrationError):
    """Raised when a task is routed to an agent the process does not know.

    Like an unknown workflow type, this is a configuration fault.

    Attributes:
        agent: The unknown agent name.
    """

    def __init__(self, agent: str) -> None:
        self.agent = agent
        super().__init__(f"Unknown agent '{agent}'")
