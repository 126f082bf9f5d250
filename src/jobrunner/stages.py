# stages.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .context import Context
from .errors import (
    DESERIALIZATION_EXIT_CODE,
    ActionFailure,
    DeserializationError,
    PluginNotFoundError,
    StageNotFoundError,
    TransportError,
)
from .model import ActionDescriptor, ActionResult, JobDefinition, JobStatus, Stage, StageOutcome
from .notifier import Notifier
from .plugins.base import Transport
from .registry import CapabilityKind, CapabilityRegistry

logger = logging.getLogger(__name__)

RULE = "-" * 79


@dataclass
class WalkResult:
    failing: bool
    outcomes: List[StageOutcome] = field(default_factory=list)


class StageWalker:
    """
    Runs a job's stages by following on_success / on_failure edges.

    Stages run strictly one after another. A failed stage marks the job as
    failing and follows on_failure; a successful stage follows on_success,
    and taking that edge clears the failing mark. When there is no edge to
    follow the walk ends, and the job failed if the mark is still set.

    Stage ids come from the job definition and may form cycles; nothing
    here bounds the number of stages run.
    """

    def __init__(
        self,
        job: JobDefinition,
        transport: Transport,
        ctx: Context,
        notifier: Notifier,
        registry: CapabilityRegistry,
    ):
        self.job = job
        self.transport = transport
        self.ctx = ctx
        self.notifier = notifier
        self.registry = registry
        self.outcomes: List[StageOutcome] = []

    def walk(self, start: Optional[str]) -> WalkResult:
        result = WalkResult(failing=False, outcomes=self.outcomes)
        current = start

        while current is not None:
            stage = self.load_stage(current)

            self.notifier.write(f"{RULE}\n{datetime.now()} : Running stage {stage.name} v{stage.version}")
            success, rc = self.run_stage(stage)

            outcome = "succeeded" if success else "failed"
            logger.info("stage %s v%s %s and returned %s", stage.name, stage.version, outcome, rc)
            self.notifier.write(f"{datetime.now()} : Stage {stage.name} v{stage.version} {outcome} (rc={rc})")
            result.outcomes.append(
                StageOutcome(
                    stage_id=current,
                    name=stage.name,
                    version=stage.version,
                    success=success,
                    exit_code=rc,
                )
            )

            if success:
                current = stage.on_success
                if current is not None:
                    result.failing = False
            else:
                current = stage.on_failure
                result.failing = True
                if self.notifier.status != JobStatus.FAILING:
                    self.notifier.status = JobStatus.FAILING
                    self.notifier.write(f"{datetime.now()} : Job status changed to FAILING")

        return result

    def load_stage(self, stage_id: str) -> Stage:
        """
        Raises:
            StageNotFoundError: if the id isn't in the job's stage mapping
            DeserializationError: if the stage payload is malformed
        """
        if stage_id not in self.job.stages:
            raise StageNotFoundError(stage_id)
        return Stage.load(self.job.stages[stage_id])

    def run_stage(self, stage: Stage) -> ActionResult:
        """
        Perform each step's action in order, stopping at the first failure.

        Returns:
            (True, 0) if every step succeeded, otherwise the failing step's
            (False, exit_code)
        """
        for index, step in enumerate(stage.steps):
            try:
                action = self._create_action(step.action)
            except (DeserializationError, PluginNotFoundError) as e:
                logger.error("couldn't create action for step %d of stage %s: %s", index, stage.name, e)
                self.notifier.write(f"{datetime.now()} : Step {index} of stage {stage.name} is invalid: {e}")
                return ActionResult(False, DESERIALIZATION_EXIT_CODE)

            try:
                action.prepare(self.transport, self.ctx)
                success, rc = action.perform(self.notifier)
            except ActionFailure as e:
                self.notifier.write(str(e))
                success, rc = False, e.exit_code

            if not success:
                return ActionResult(False, rc)

        return ActionResult(True, 0)

    def _create_action(self, payload):
        descriptor = ActionDescriptor.load(payload)
        action_cls = self.registry.find(CapabilityKind.ACTION, descriptor.type)
        try:
            return action_cls(**descriptor.params())
        except TransportError:
            raise
        except Exception as e:
            raise DeserializationError(f"invalid parameters for action '{descriptor.type}': {e}") from e
