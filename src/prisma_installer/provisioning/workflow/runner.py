from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from prisma_installer.provisioning.context import RunContext
from prisma_installer.provisioning.errors import ProvisioningError

from .steps import Step

logger = logging.getLogger(__name__)


class StepOutcome(str, Enum):
    SKIPPED = "skipped"
    EXECUTED = "executed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class StepResult:
    step: str
    outcome: StepOutcome
    message: str = ""
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class RunReport:
    """Ordered results of one run. Nothing is recorded after the first failure."""

    results: tuple[StepResult, ...]

    @property
    def failed(self) -> StepResult | None:
        for result in self.results:
            if result.outcome is StepOutcome.FAILED:
                return result
        return None

    @property
    def ok(self) -> bool:
        return self.failed is None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def outcomes(self) -> list[StepOutcome]:
        return [r.outcome for r in self.results]


class ProvisioningOrchestrator:
    """Run steps strictly in order and stop at the first failure.

    A satisfied step is skipped unless the context asks for a refresh, in
    which case the step is displaced first and then applied again.
    """

    def __init__(self, steps: Sequence[Step]) -> None:
        self._steps = tuple(steps)

    @property
    def steps(self) -> tuple[Step, ...]:
        return self._steps

    def run(self, context: RunContext) -> RunReport:
        results: list[StepResult] = []
        total = len(self._steps)

        for index, step in enumerate(self._steps, start=1):
            log_extra = {"step": step.name, "kind": step.kind.value, "index": index, "total": total}

            try:
                outcome = self._run_step(step, context, log_extra)
            except ProvisioningError as e:
                logger.error(
                    "Step failed",
                    extra={**log_extra, "outcome": "failed", "error": str(e)},
                )
                results.append(StepResult(step.name, StepOutcome.FAILED, str(e), hint=e.hint))
                break

            if outcome is StepOutcome.SKIPPED:
                results.append(StepResult(step.name, outcome, "already satisfied"))
            else:
                results.append(StepResult(step.name, outcome))

        return RunReport(results=tuple(results))

    @staticmethod
    def _run_step(step: Step, context: RunContext, log_extra: dict[str, object]) -> StepOutcome:
        """Precondition, then displacement and action. Errors propagate to `run`."""

        satisfied = step.is_satisfied(context)
        if satisfied and not context.refresh:
            logger.info("Step skipped", extra={**log_extra, "outcome": "skipped"})
            return StepOutcome.SKIPPED

        logger.info("Step starting", extra={**log_extra, "refresh": context.refresh})
        if satisfied:
            step.displace(context)
        step.apply(context)
        logger.info("Step completed", extra={**log_extra, "outcome": "executed"})
        return StepOutcome.EXECUTED
