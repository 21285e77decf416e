"""Structured progress events emitted while routes are processed."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Kinds of orchestrator events."""

    ROUTE_STARTED = "route_started"
    STEPS_CLASSIFIED = "steps_classified"
    ROUTE_SKIPPED = "route_skipped"
    APPROVAL_SUBMITTED = "approval_submitted"
    APPROVAL_CONFIRMED = "approval_confirmed"
    CALL_DECODED = "call_decoded"
    OVERRIDE_APPLIED = "override_applied"
    VERIFICATION = "verification"
    TRANSFER_SUBMITTED = "transfer_submitted"
    TRANSFER_CONFIRMED = "transfer_confirmed"
    ROUTE_FAILED = "route_failed"
    RUN_COMPLETED = "run_completed"


@dataclass(frozen=True)
class RouteEvent:
    """A single progress event."""

    kind: EventKind
    route_id: str | None = None
    step_index: int | None = None
    data: dict[str, Any] = field(default_factory=dict)


class EventSink(Protocol):
    def emit(self, event: RouteEvent) -> None: ...


_WARNING_KINDS = frozenset({EventKind.ROUTE_SKIPPED})
_ERROR_KINDS = frozenset({EventKind.ROUTE_FAILED})


class LoggingEventSink:
    """Render events as log records."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def emit(self, event: RouteEvent) -> None:
        if event.kind in _ERROR_KINDS:
            level = logging.ERROR
        elif event.kind in _WARNING_KINDS:
            level = logging.WARNING
        else:
            level = logging.INFO

        if event.kind is EventKind.VERIFICATION and not event.data.get("match", False):
            level = logging.ERROR

        self._log.log(
            level,
            "%s route=%s step=%s %s",
            event.kind.value,
            event.route_id,
            event.step_index,
            " ".join(f"{key}={value}" for key, value in event.data.items()),
        )


class RecordingEventSink:
    """Keep events in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[RouteEvent] = []

    def emit(self, event: RouteEvent) -> None:
        self.events.append(event)

    def kinds(self, route_id: str | None = None) -> list[EventKind]:
        return [
            event.kind
            for event in self.events
            if route_id is None or event.route_id == route_id
        ]


class FanOutEventSink:
    """Forward every event to several sinks."""

    def __init__(self, *sinks: EventSink) -> None:
        self._sinks = sinks

    def emit(self, event: RouteEvent) -> None:
        for sink in self._sinks:
            sink.emit(event)
