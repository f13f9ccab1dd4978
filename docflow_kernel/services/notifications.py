"""
In-tree NotificationEmitter implementations.

Delivery (mail, chat, push) is an external collaborator; the kernel only
ships an emitter that discards events and one that records them.
"""

from __future__ import annotations

from docflow_kernel.domain.approval import TransitionEvent
from docflow_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


class NullEmitter:
    """Discards events. Used when no emitter is configured."""

    def emit(self, event: TransitionEvent) -> None:
        logger.debug(
            "notification_discarded",
            extra={"document_id": str(event.document_id), "action": event.action.value},
        )


class RecordingEmitter:
    """Keeps every event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[TransitionEvent] = []

    def emit(self, event: TransitionEvent) -> None:
        self.events.append(event)

    def clear(self) -> None:
        self.events.clear()

    @property
    def last(self) -> TransitionEvent | None:
        return self.events[-1] if self.events else None
