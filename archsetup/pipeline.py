from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Sequence

from .state_store import is_step_completed, mark_step_completed, record_warning

if TYPE_CHECKING:
    from .context import RunContext

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single idempotent step.

    Optional steps may fail without stopping the run.
    """

    step_id: str
    optional: bool

    def run(self, ctx: "RunContext", state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]
    failed_steps: List[str]


def run_pipeline(
    *,
    ctx: "RunContext",
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
) -> PipelineResult:
    """Run steps in order with resume/idempotency semantics."""

    ran: List[str] = []
    skipped: List[str] = []
    failed: List[str] = []

    known = {s.step_id for s in steps}
    for name, value in (("start_at", start_at), ("stop_after", stop_after)):
        if value is not None and value not in known:
            raise ValueError(f"Unknown step for {name}: {value}")

    started = start_at is None

    for step in steps:
        if not started:
            if step.step_id == start_at:
                started = True
            else:
                continue

        state.setdefault("execution", {})["current_step"] = step.step_id

        if (not force) and is_step_completed(state, step.step_id):
            logger.info("Skipping step %s (already completed)", step.step_id)
            skipped.append(step.step_id)
        else:
            logger.info("==> %s", step.step_id)
            try:
                state = step.run(ctx, state)
            except Exception as e:
                if not getattr(step, "optional", False):
                    raise
                logger.warning("Optional step %s failed: %s", step.step_id, e)
                record_warning(state, step.step_id, str(e))
                failed.append(step.step_id)
            else:
                mark_step_completed(state, step.step_id)
                ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    state.setdefault("execution", {})["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped, failed_steps=failed)
