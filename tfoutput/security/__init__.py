"""Security module for credentials and secrets masking."""

from .credentials import CredentialProvisioner
from .netrc import write_netrc
from .secrets import SecretsManager, SecretsMaskingFilter, install_masking_filter

__all__ = [
    'CredentialProvisioner',
    'write_netrc',
    'SecretsManager',
    'SecretsMaskingFilter',
    'install_masking_filter',
]
