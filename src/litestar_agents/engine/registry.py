"""Workflow registry for managing workflow definitions.

This module provides the in-memory registry of workflow definitions, keyed by
workflow type. Definitions are rebuilt at process start and validated on
registration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from litestar_agents.core.types import AGENT_NAMES
from litestar_agents.exceptions import WorkflowNotFoundError, WorkflowValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from litestar_agents.core.definition import WorkflowDefinition

__all__ = ["WorkflowRegistry"]

logger = structlog.get_logger(__name__)


class WorkflowRegistry:
    """Registry for storing and retrieving workflow definitions.

    Attributes:
        known_agents: Agent names a step may target.
        _definitions: Map of workflow type to its definition.
    """

    def __init__(self, known_agents: Iterable[str] | None = None) -> None:
        """Initialize an empty workflow registry.

        Args:
            known_agents: Agent names steps may target. Defaults to the built-in
                agent roles.
        """
        self.known_agents: frozenset[str] = frozenset(known_agents) if known_agents is not None else AGENT_NAMES
        self._definitions: dict[str, WorkflowDefinition] = {}

    def register(self, definition: WorkflowDefinition) -> None:
        """Register a workflow definition with the registry.

        Registering an existing workflow type replaces its definition.

        Args:
            definition: The definition to register.

        Raises:
            WorkflowValidationError: If a step targets an unknown agent or is
                otherwise malformed.

        Example:
            >>> registry = WorkflowRegistry()
            >>> registry.register(new_blog_post_definition())
        """
        errors = definition.validate(self.known_agents)
        if errors:
            raise WorkflowValidationError(errors)

        replaced = definition.workflow_type in self._definitions
        self._definitions[definition.workflow_type] = definition
        logger.debug(
            "workflow_registered",
            workflow_type=definition.workflow_type,
            steps=definition.total_steps,
            replaced=replaced,
        )

    def get_definition(self, workflow_type: str) -> WorkflowDefinition:
        """Retrieve a workflow definition by type.

        Args:
            workflow_type: The workflow type.

        Returns:
            The registered definition.

        Raises:
            WorkflowNotFoundError: If the workflow type is not registered.
        """
        try:
            return self._definitions[workflow_type]
        except KeyError:
            raise WorkflowNotFoundError(workflow_type) from None

    def list_definitions(self) -> list[WorkflowDefinition]:
        """List all registered workflow definitions."""
        return list(self._definitions.values())

    def unregister(self, workflow_type: str) -> None:
        """Remove a workflow from the registry. Unknown types are ignored."""
        self._definitions.pop(workflow_type, None)

    def has_workflow(self, workflow_type: str) -> bool:
        """Check if a workflow type exists in the registry.

        Example:
            >>> if registry.has_workflow("new_blog_post"):
            ...     definition = registry.get_definition("new_blog_post")
        """
        return workflow_type in self._definitions
