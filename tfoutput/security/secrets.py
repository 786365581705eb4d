"""
Secret value tracking and masking.

Values registered here (assumed-role credentials, the netrc password,
sensitive terraform outputs) are replaced with '***' in log records.
Masking is best-effort: only exact occurrences of a registered value are
replaced.
"""

import logging
import re
from typing import Any, Dict, Optional, Set


MASK = "***"
MIN_SECRET_LENGTH = 4  # Shorter values would mask unrelated text


class SecretsManager:
    """
    Remembers secret values for the lifetime of a run and masks them.
    """

    def __init__(self):
        """Initialize secrets manager."""
        self._masked_values: Set[str] = set()

    def register(self, value: Optional[str]) -> None:
        """Track a value for masking. Values shorter than MIN_SECRET_LENGTH are ignored."""
        if value and len(value) >= MIN_SECRET_LENGTH:
            self._masked_values.add(value)

    def mask_text(self, text: str) -> str:
        """
        Mask known secret values in text.

        Args:
            text: Text potentially containing secrets

        Returns:
            Text with secrets masked
        """
        if not text or not self._masked_values:
            return text

        masked = text
        # Longer values first so a secret containing another is fully masked
        for secret_value in sorted(self._masked_values, key=len, reverse=True):
            if secret_value in masked:
                masked = re.sub(re.escape(secret_value), MASK, masked)

        return masked

    def mask_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively mask secrets in a dictionary."""
        if not data or not self._masked_values:
            return data

        masked = {}
        for key, value in data.items():
            if isinstance(value, str):
                masked[key] = self.mask_text(value)
            elif isinstance(value, dict):
                masked[key] = self.mask_dict(value)
            elif isinstance(value, list):
                masked[key] = [
                    self.mask_text(item) if isinstance(item, str) else item
                    for item in value
                ]
            else:
                masked[key] = value

        return masked


class SecretsMaskingFilter(logging.Filter):
    """
    Logging filter for masking secrets in log records.

    Attached to handlers so masking happens however the record was created.
    """

    def __init__(self, secrets_manager: SecretsManager):
        super().__init__()
        self.secrets_manager = secrets_manager

    def filter(self, record):
        """Mask the message and its args; always pass the record through."""
        if hasattr(record, 'msg'):
            record.msg = self.secrets_manager.mask_text(str(record.msg))

        if hasattr(record, 'args') and record.args:
            if isinstance(record.args, dict):
                record.args = self.secrets_manager.mask_dict(record.args)
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self.secrets_manager.mask_text(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True


def install_masking_filter(secrets_manager: SecretsManager, logger: Optional[logging.Logger] = None) -> SecretsMaskingFilter:
    """Attach a masking filter to every handler of `logger` (default: root)."""
    target = logger or logging.getLogger()
    masking_filter = SecretsMaskingFilter(secrets_manager)
    for handler in target.handlers:
        handler.addFilter(masking_filter)
    return masking_filter
