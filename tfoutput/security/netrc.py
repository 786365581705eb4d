"""Netrc file used by terraform to fetch modules from private git hosts."""

import logging
import os
from pathlib import Path
from typing import Optional

from tfoutput.config import NetrcConfig
from tfoutput.exceptions import PersistenceError


logger = logging.getLogger(__name__)

NETRC_TEMPLATE = "machine {machine}\nlogin {login}\npassword {password}\n"
NETRC_MODE = 0o600


def home_directory() -> Path:
    """Home of the invoking user, falling back to /root."""
    try:
        return Path.home()
    except (KeyError, RuntimeError):
        return Path("/root")


def write_netrc(netrc: NetrcConfig, home: Optional[Path] = None) -> Optional[Path]:
    """
    Write ~/.netrc when a machine is configured.

    Returns:
        The path written, or None when no machine is set.

    Raises:
        PersistenceError: if the file cannot be written
    """
    if not netrc.machine:
        return None

    path = (home or home_directory()) / ".netrc"
    content = NETRC_TEMPLATE.format(
        machine=netrc.machine,
        login=netrc.login,
        password=netrc.password,
    )

    try:
        fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, NETRC_MODE)
        with os.fdopen(fd, "w") as f:
            f.write(content)
        os.chmod(path, NETRC_MODE)
    except OSError as e:
        raise PersistenceError(f"Failed to write netrc file {path}: {e}") from e

    logger.debug(f"Wrote netrc for machine {netrc.machine} to {path}")
    return path
