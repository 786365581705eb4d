"""Tests for pinned terraform installation."""

import io
import os
import zipfile
from unittest.mock import MagicMock, patch

import pytest
import requests

from tfoutput.exceptions import InstallError
from tfoutput.installer import install_terraform, release_url


def _zip_with(name, content):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr(name, content)
    return buffer.getvalue()


def _response(content=b"", status_error=None):
    response = MagicMock()
    response.content = content
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    return response


class TestReleaseUrl:

    def test_linux_amd64(self):
        assert release_url("1.5.7", os_name="linux", arch="x86_64") == (
            "https://releases.hashicorp.com/terraform/1.5.7/terraform_1.5.7_linux_amd64.zip"
        )

    def test_leading_v_and_arm(self):
        assert release_url("v1.6.0", os_name="linux", arch="aarch64").endswith("terraform_1.6.0_linux_arm64.zip")


class TestInstallTerraform:

    def test_installs_executable_binary(self, tmp_path):
        with patch("tfoutput.installer.requests.get", return_value=_response(_zip_with("terraform", b"#!bin"))) as mock_get:
            target = install_terraform("1.5.7", install_dir=tmp_path)

        assert mock_get.call_args.args[0].startswith("https://releases.hashicorp.com/terraform/1.5.7/")
        assert target == tmp_path / "terraform"
        assert target.read_bytes() == b"#!bin"
        assert os.access(target, os.X_OK)

    def test_http_error(self, tmp_path):
        response = _response(status_error=requests.HTTPError("404 Not Found"))
        with patch("tfoutput.installer.requests.get", return_value=response):
            with pytest.raises(InstallError):
                install_terraform("0.0.0", install_dir=tmp_path)

    def test_connection_error(self, tmp_path):
        with patch("tfoutput.installer.requests.get", side_effect=requests.ConnectionError("offline")):
            with pytest.raises(InstallError):
                install_terraform("1.5.7", install_dir=tmp_path)

    def test_archive_without_binary(self, tmp_path):
        with patch("tfoutput.installer.requests.get", return_value=_response(_zip_with("README", b"hi"))):
            with pytest.raises(InstallError):
                install_terraform("1.5.7", install_dir=tmp_path)

    def test_corrupt_archive(self, tmp_path):
        with patch("tfoutput.installer.requests.get", return_value=_response(b"not a zip")):
            with pytest.raises(InstallError):
                install_terraform("1.5.7", install_dir=tmp_path)
