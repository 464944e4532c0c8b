"""Typed task payloads.

Task payloads are stored as opaque JSON maps. Each consumer registers a decoder
for the task types it owns and only ever sees its own shapes; unregistered
types pass through as plain dicts.
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass, fields
from typing import Any, ClassVar, Protocol, TypeVar

from litestar_agents.exceptions import InvalidPayloadError

__all__ = ["PayloadRegistry", "TaskPayload"]

PayloadT = TypeVar("PayloadT", bound="TaskPayload")


class _Decoder(Protocol):
    def from_payload(self, task_type: str, payload: dict[str, Any]) -> Any: ...


@dataclass
class TaskPayload:
    """Base class for dataclass payloads.

    Subclasses declare their fields as dataclass fields. Fields without a
    default are required; extra keys in the stored map are ignored.

    Example:
        >>> @dataclass
        ... class AdvanceWorkflowPayload(TaskPayload):
        ...     workflow_id: str
        >>> AdvanceWorkflowPayload.from_payload("advance_workflow", {"workflow_id": "abc"})
        AdvanceWorkflowPayload(workflow_id='abc')
    """

    aliases: ClassVar[dict[str, str]] = {}
    """Alternate stored key -> field name, for payloads written by older producers."""

    @classmethod
    def from_payload(cls: type[PayloadT], task_type: str, payload: dict[str, Any]) -> PayloadT:
        """Decode a stored payload map.

        Args:
            task_type: The task type, used in error messages.
            payload: The stored payload map.

        Returns:
            The decoded payload.

        Raises:
            InvalidPayloadError: If required keys are missing.
        """
        data = dict(payload)
        for alias, name in cls.aliases.items():
            if alias in data and name not in data:
                data[name] = data[alias]

        kwargs: dict[str, Any] = {}
        missing: list[str] = []
        for f in fields(cls):
            if f.name in data:
                kwargs[f.name] = data[f.name]
            elif f.default is MISSING and f.default_factory is MISSING:
                missing.append(f.name)

        if missing:
            raise InvalidPayloadError(task_type, missing)

        return cls(**kwargs)


class PayloadRegistry:
    """Registry mapping task types to payload decoders."""

    def __init__(self) -> None:
        self._decoders: dict[str, type[TaskPayload] | _Decoder] = {}

    def register(self, task_type: str, decoder: type[TaskPayload] | _Decoder) -> None:
        """Register the decoder for a task type, replacing any previous one."""
        self._decoders[task_type] = decoder

    def has_decoder(self, task_type: str) -> bool:
        return task_type in self._decoders

    def decode(self, task_type: str, payload: dict[str, Any]) -> Any:
        """Decode a payload for ``task_type``.

        Args:
            task_type: The task type.
            payload: The stored payload map.

        Returns:
            The typed payload, or a copy of the map if no decoder is registered.
        """
        decoder = self._decoders.get(task_type)
        if decoder is None:
            return dict(payload)
        return decoder.from_payload(task_type, payload)
