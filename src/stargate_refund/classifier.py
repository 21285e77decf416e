"""Classification of route steps into approval and transfer calls."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from .codec import selector_of
from .constants import APPROVE_SELECTOR, SEND_SELECTOR
from .types import Step

logger = logging.getLogger(__name__)

_APPROVE = "0x" + APPROVE_SELECTOR.hex()
_SEND = "0x" + SEND_SELECTOR.hex()


@dataclass(frozen=True)
class StepSummary:
    """Diagnostic view of a single step."""

    index: int
    type: str
    selector: str | None


@dataclass(frozen=True)
class StepClassification:
    """Approval and transfer steps found in a route."""

    approval: Step | None = None
    approval_index: int | None = None
    transfer: Step | None = None
    transfer_index: int | None = None
    summaries: tuple[StepSummary, ...] = field(default_factory=tuple)

    @property
    def has_transfer(self) -> bool:
        return self.transfer is not None


def classify_steps(steps: Sequence[Step]) -> StepClassification:
    """Locate the first approval and the first ``send()`` step.

    Every step is scanned so the summaries cover the whole route, but the
    first match of each kind wins. Later approval-shaped steps are ignored.
    """

    approval: Step | None = None
    approval_index: int | None = None
    transfer: Step | None = None
    transfer_index: int | None = None
    summaries: list[StepSummary] = []

    for index, step in enumerate(steps):
        call_data = step.call_data
        selector = selector_of(call_data) if call_data else None
        summaries.append(StepSummary(index=index, type=step.type, selector=selector))
        if selector is None:
            continue

        logger.debug("Step %s: type=%s selector=%s", index, step.type, selector)
        if selector == _APPROVE:
            if approval is None:
                approval, approval_index = step, index
            else:
                logger.warning(
                    "Ignoring additional approval step %s (using step %s)", index, approval_index
                )
        elif selector == _SEND and transfer is None:
            transfer, transfer_index = step, index

    return StepClassification(
        approval=approval,
        approval_index=approval_index,
        transfer=transfer,
        transfer_index=transfer_index,
        summaries=tuple(summaries),
    )
