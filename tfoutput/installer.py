"""Installs a pinned terraform release from releases.hashicorp.com."""

import io
import logging
import os
import platform
import zipfile
from pathlib import Path
from typing import Optional

import requests

from tfoutput.exceptions import InstallError


logger = logging.getLogger(__name__)

RELEASES_URL = "https://releases.hashicorp.com/terraform/{version}/terraform_{version}_{os}_{arch}.zip"
DEFAULT_INSTALL_DIR = Path("/bin")
DOWNLOAD_TIMEOUT_SEC = 120

_ARCHES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "armv7l": "arm",
}


def release_url(version: str, os_name: Optional[str] = None, arch: Optional[str] = None) -> str:
    os_name = os_name or platform.system().lower()
    machine = (arch or platform.machine()).lower()
    return RELEASES_URL.format(
        version=version.lstrip("v"),
        os=os_name,
        arch=_ARCHES.get(machine, machine),
    )


def install_terraform(version: str, install_dir: Path = DEFAULT_INSTALL_DIR) -> Path:
    """
    Download `version` and place the binary in `install_dir`.

    Returns:
        Path of the installed binary

    Raises:
        InstallError: on download, archive or filesystem failures
    """
    url = release_url(version)
    logger.info(f"Installing terraform {version} from {url}")

    try:
        response = requests.get(url, timeout=DOWNLOAD_TIMEOUT_SEC)
        response.raise_for_status()
    except requests.RequestException as e:
        raise InstallError(f"Failed to download terraform {version}: {e}") from e

    target = install_dir / "terraform"
    try:
        with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
            target.write_bytes(archive.read("terraform"))
        os.chmod(target, 0o755)
    except (zipfile.BadZipFile, KeyError) as e:
        raise InstallError(f"Invalid terraform archive for {version}: {e}") from e
    except OSError as e:
        raise InstallError(f"Failed to install terraform to {target}: {e}") from e

    logger.info(f"Installed terraform {version} to {target}")
    return target
