"""
Assumed-role credentials for terraform runs.

The role is assumed through STS once per run. The temporary credentials go
into the run's EnvironmentContext so every later terraform step inherits
them.
"""

import logging
from typing import Any, Callable, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from tfoutput.exceptions import CredentialError
from tfoutput.exec.context import EnvironmentContext
from .secrets import SecretsManager


logger = logging.getLogger(__name__)

SESSION_NAME = "drone"
SESSION_DURATION_SECONDS = 3600


def _default_sts_client() -> Any:
    return boto3.client("sts")


class CredentialProvisioner:
    """Assumes a role and exports its session credentials to a context."""

    def __init__(
        self,
        client_factory: Callable[[], Any] = _default_sts_client,
        secrets_manager: Optional[SecretsManager] = None,
    ):
        self.client_factory = client_factory
        self.secrets_manager = secrets_manager or SecretsManager()

    def provision(self, role_arn: str, context: EnvironmentContext) -> Optional[Dict[str, str]]:
        """
        Assume `role_arn` and export AWS_* credentials into `context`.

        Returns the exported variables, or None when no role is configured.

        Raises:
            CredentialError: if STS does not return credentials
        """
        if not role_arn:
            logger.debug("No role to assume, skipping credential exchange")
            return None

        logger.info(f"Assuming role {role_arn}")

        try:
            sts = self.client_factory()
            response = sts.assume_role(
                RoleArn=role_arn,
                RoleSessionName=SESSION_NAME,
                DurationSeconds=SESSION_DURATION_SECONDS,
            )
        except (BotoCoreError, ClientError) as e:
            raise CredentialError(f"Error assuming role {role_arn}: {e}") from e

        creds = response.get("Credentials") if response else None
        if not creds:
            raise CredentialError(f"Error assuming role {role_arn}: AssumeRole returned no credentials")

        try:
            exported = {
                "AWS_ACCESS_KEY_ID": creds["AccessKeyId"],
                "AWS_SECRET_ACCESS_KEY": creds["SecretAccessKey"],
                "AWS_SESSION_TOKEN": creds["SessionToken"],
            }
        except KeyError as e:
            raise CredentialError(f"Error assuming role {role_arn}: missing {e.args[0]} in response") from e

        self.secrets_manager.register(exported["AWS_SECRET_ACCESS_KEY"])
        self.secrets_manager.register(exported["AWS_SESSION_TOKEN"])

        context.update(exported)

        expiration = creds.get("Expiration")
        if expiration is not None:
            logger.info(f"Assumed role {role_arn}, session expires at {expiration.isoformat()}")

        return exported
