"""
Command sequencing for the terraform lifecycle.

Builds the fixed list of setup steps (version, CA install, cache reset,
init, module fetch) and runs them in order, stopping at the first failure.
Nothing is retried: by the time a step fails, remote state may already
have been changed.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from tfoutput.config import ExecutionConfig, InitOptions
from .context import EnvironmentContext
from .step_executor import CommandStep, StepExecutor, StepResult


logger = logging.getLogger(__name__)

TERRAFORM = "terraform"
CA_CERT_PATH = Path("/usr/local/share/ca-certificates/ca_cert.crt")


def resolve_working_dir(root_dir: str = "", base: Optional[Path] = None) -> Path:
    """Current directory, joined with the configured root directory if any."""
    working_dir = base or Path.cwd()
    if root_dir:
        working_dir = working_dir / root_dir
    return working_dir


def version_command() -> CommandStep:
    return CommandStep(name="version", argv=[TERRAFORM, "version"])


def install_ca_cert_command(ca_cert: str, cert_path: Path = CA_CERT_PATH) -> CommandStep:
    """Write the CA blob into the trust store, then refresh it."""

    def write_cert() -> None:
        cert_path.write_text(ca_cert, encoding="utf-8")
        os.chmod(cert_path, 0o644)

    return CommandStep(
        name="install_ca_cert",
        argv=["update-ca-certificates"],
        prepare=write_cert,
    )


def delete_cache_command(data_dir: str) -> CommandStep:
    return CommandStep(name="delete_cache", argv=["rm", "-rf", data_dir])


def init_args(options: InitOptions) -> List[str]:
    """Arguments for the init command derived from InitOptions."""
    args = ["init"]

    for value in options.backend_config:
        args.append(f"-backend-config={value}")

    # True is the tool default
    if options.lock is not None:
        args.append(f"-lock={'true' if options.lock else 'false'}")

    # "0s" is the tool default
    if options.lock_timeout:
        args.append(f"-lock-timeout={options.lock_timeout}")

    # Fail instead of blocking on a prompt
    args.append("-input=false")

    return args


def init_command(options: InitOptions) -> CommandStep:
    return CommandStep(name="init", argv=[TERRAFORM] + init_args(options))


def get_modules_command() -> CommandStep:
    return CommandStep(name="get", argv=[TERRAFORM, "get"])


@dataclass
class SequenceResult:
    """Outcome of running a command sequence."""
    results: List[StepResult] = field(default_factory=list)
    failed: Optional[StepResult] = None

    @property
    def ok(self) -> bool:
        return self.failed is None


class CommandSequencer:
    """
    Runs the setup steps of a plugin run in their canonical order.
    """

    def __init__(
        self,
        config: ExecutionConfig,
        executor: Optional[StepExecutor] = None,
        cert_path: Path = CA_CERT_PATH,
    ):
        self.config = config
        self.executor = executor or StepExecutor(
            working_dir=resolve_working_dir(config.root_dir),
            trace=not config.sensitive,
        )
        self.cert_path = cert_path

    def build_steps(self) -> List[CommandStep]:
        """Build the ordered setup steps for this configuration."""
        steps = [version_command()]

        if self.config.ca_cert:
            steps.append(install_ca_cert_command(self.config.ca_cert, self.cert_path))

        steps.append(delete_cache_command(self.config.effective_data_dir))
        steps.append(init_command(self.config.init_options))
        steps.append(get_modules_command())

        return steps

    def run(self, context: EnvironmentContext, steps: Optional[List[CommandStep]] = None) -> SequenceResult:
        """
        Execute steps strictly in order.

        Returns:
            SequenceResult whose `failed` is the first non-ok step, if any;
            steps after it are never started.
        """
        sequence = SequenceResult()

        for step in (steps if steps is not None else self.build_steps()):
            result = self.executor.execute(step, context)
            sequence.results.append(result)

            if not result.ok:
                logger.error(f"Step '{step.name}' failed: {result.describe_failure()}")
                sequence.failed = result
                break

            logger.debug(f"Step completed successfully: {result.to_dict()}")

        return sequence
