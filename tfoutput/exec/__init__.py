"""
Execution module for the plugin.
Handles step sequencing, process execution and output capture.
"""

from .context import EnvironmentContext
from .output_capture import OutputExtractor
from .sequencer import CommandSequencer, SequenceResult
from .step_executor import CommandStep, StepExecutor, StepResult

__all__ = [
    "EnvironmentContext",
    "OutputExtractor",
    "CommandSequencer",
    "SequenceResult",
    "CommandStep",
    "StepExecutor",
    "StepResult",
]
