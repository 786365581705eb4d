"""
Output capture for the terraform output query.

Unlike the setup steps, the query's stdout is fully buffered so it can be
parsed; stderr still goes to the operator.
"""

import logging
from typing import Optional

from .context import EnvironmentContext
from .sequencer import TERRAFORM
from .step_executor import CommandStep, StepExecutor, StepResult


logger = logging.getLogger(__name__)


def output_command() -> CommandStep:
    return CommandStep(
        name="output",
        argv=[TERRAFORM, "output", "-json", "-no-color"],
        capture=True,
    )


class OutputExtractor:
    """Runs the output query and returns its raw stdout bytes in a StepResult."""

    def __init__(self, executor: StepExecutor):
        self.executor = executor

    def extract(self, context: Optional[EnvironmentContext] = None) -> StepResult:
        result = self.executor.execute(output_command(), context)
        if result.ok:
            logger.debug(f"Captured {len(result.stdout)} bytes of output")
        else:
            logger.error(f"Output query failed: {result.describe_failure()}")
        return result
