"""
Plugin run orchestration.

A run is a strict linear sequence:

    install (optional) -> credentials (optional) -> netrc -> setup steps
    -> output query -> env-file

The first failure raises a TfOutputError subclass and nothing after it runs.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, TextIO

from tfoutput import __version__
from tfoutput.config import PluginSettings
from tfoutput.exceptions import OutputCaptureError, StepExecutionError
from tfoutput.exec.context import EnvironmentContext
from tfoutput.exec.output_capture import OutputExtractor
from tfoutput.exec.sequencer import CommandSequencer, resolve_working_dir
from tfoutput.exec.step_executor import StepExecutor
from tfoutput.installer import install_terraform
from tfoutput.outputs import OutputTransformer, TransformResult
from tfoutput.security.credentials import CredentialProvisioner
from tfoutput.security.netrc import write_netrc
from tfoutput.security.secrets import SecretsManager


logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs the terraform lifecycle and publishes its outputs as env vars."""

    def __init__(
        self,
        settings: PluginSettings,
        context: Optional[EnvironmentContext] = None,
        secrets_manager: Optional[SecretsManager] = None,
        executor: Optional[StepExecutor] = None,
        provisioner: Optional[CredentialProvisioner] = None,
        installer: Callable[[str], Path] = install_terraform,
        home: Optional[Path] = None,
        report_stream: Optional[TextIO] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            settings: Loaded plugin settings
            context: Environment shared by all steps (default: empty overrides)
            secrets_manager: Collects values to mask in logs
            executor: Step executor shared by the sequencer and the extractor
            provisioner: Role credential provisioner
            installer: Callable installing a pinned tool version
            home: Home directory for the netrc file (default: current user's)
            report_stream: Where the outputs report is printed
        """
        self.settings = settings
        self.config = settings.config
        self.context = context or EnvironmentContext()
        self.secrets_manager = secrets_manager or SecretsManager()
        self.executor = executor or StepExecutor(
            working_dir=resolve_working_dir(self.config.root_dir),
            trace=not self.config.sensitive,
        )
        self.provisioner = provisioner or CredentialProvisioner(secrets_manager=self.secrets_manager)
        self.installer = installer
        self.home = home
        self.sequencer = CommandSequencer(self.config, executor=self.executor)
        self.extractor = OutputExtractor(self.executor)
        self.transformer = OutputTransformer(
            self.config,
            report_stream=report_stream,
            secrets_manager=self.secrets_manager,
        )

    def execute(self) -> TransformResult:
        """
        Execute the plugin.

        Raises:
            TfOutputError: on the first fatal condition
        """
        logger.info(f"Terraform output to env plugin version {__version__}")

        if self.settings.tool.version:
            self.installer(self.settings.tool.version)

        self.provisioner.provision(self.config.role_arn, self.context)

        self.secrets_manager.register(self.settings.netrc.password)
        write_netrc(self.settings.netrc, home=self.home)

        if self.config.data_dir:
            self.context.set("TF_DATA_DIR", self.config.data_dir)

        sequence = self.sequencer.run(self.context)
        if not sequence.ok:
            raise StepExecutionError(sequence.failed)

        capture = self.extractor.extract(self.context)
        if not capture.ok:
            raise OutputCaptureError(capture, f"Failed to read terraform outputs: {capture.describe_failure()}")

        return self.transformer.transform(capture.stdout)
