"""Workflow engine and definition registry.

This module provides the engine that dispatches workflow steps as agent tasks
and the registry holding the workflow definitions known to the process.
"""

from __future__ import annotations

from litestar_agents.engine.registry import WorkflowRegistry
from litestar_agents.engine.workflow import WorkflowEngine

__all__ = [
    "WorkflowEngine",
    "WorkflowRegistry",
]
