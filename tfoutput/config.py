"""Run configuration and strict validation of plugin settings."""

import json
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple
import yaml

from tfoutput.exceptions import ConfigValidationError, ValidationError


DEFAULT_ENV_PREFIX = "TF_OUTPUT_"
DEFAULT_ENV_FILE = ".env"
DEFAULT_DATA_DIR = ".terraform"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"", "0", "false", "no", "off"}


@dataclass(frozen=True)
class InitOptions:
    """Options for the init command. See https://www.terraform.io/docs/commands/init.html"""
    backend_config: Tuple[str, ...] = ()
    lock: Optional[bool] = None  # None leaves the tool default (true)
    lock_timeout: str = ""  # Empty leaves the tool default ("0s")


@dataclass(frozen=True)
class NetrcConfig:
    """Credentials written to ~/.netrc for fetching private modules."""
    machine: str = ""
    login: str = ""
    password: str = ""


@dataclass(frozen=True)
class ToolSettings:
    """Pinned tool version; empty uses whatever is on PATH."""
    version: str = ""


@dataclass(frozen=True)
class ExecutionConfig:
    """Immutable settings for one plugin run."""
    init_options: InitOptions = field(default_factory=InitOptions)
    ca_cert: str = ""
    sensitive: bool = False
    role_arn: str = ""
    root_dir: str = ""
    data_dir: str = ""
    export_envs: bool = False
    env_file: str = DEFAULT_ENV_FILE
    env_prefix: str = DEFAULT_ENV_PREFIX

    @property
    def effective_data_dir(self) -> str:
        return self.data_dir or DEFAULT_DATA_DIR


@dataclass(frozen=True)
class PluginSettings:
    """Everything the orchestrator needs, as loaded from the invocation."""
    config: ExecutionConfig
    netrc: NetrcConfig = field(default_factory=NetrcConfig)
    tool: ToolSettings = field(default_factory=ToolSettings)


class ConfigLoader:
    """Builds PluginSettings from raw string values, collecting all errors."""

    INIT_OPTION_KEYS = {"backend-config", "lock", "lock-timeout"}

    def __init__(self):
        self.errors: List[ValidationError] = []

    def load(self, values: Mapping[str, Any]) -> PluginSettings:
        """
        Load settings from a mapping of option name to raw value.

        Values may be native Python types (from argparse) or strings
        (from PLUGIN_* environment variables).

        Raises:
            ConfigValidationError: if any value is invalid
        """
        self.errors = []

        init_options = self.parse_init_options(values.get("init_options") or "")

        config = ExecutionConfig(
            init_options=init_options,
            ca_cert=self._string(values, "ca_cert"),
            sensitive=self._bool(values, "sensitive"),
            role_arn=self._string(values, "role_arn_to_assume"),
            root_dir=self._string(values, "root_dir"),
            data_dir=self._string(values, "tf_data_dir"),
            export_envs=self._bool(values, "export_envs"),
            env_file=self._string(values, "envfile") or DEFAULT_ENV_FILE,
            env_prefix=self._string(values, "env_prefix", DEFAULT_ENV_PREFIX),
        )

        if not config.env_file.strip():
            self._add_error("env file path must not be blank", "envfile")

        netrc = NetrcConfig(
            machine=self._string(values, "netrc_machine"),
            login=self._string(values, "netrc_username"),
            password=self._string(values, "netrc_password"),
        )

        tool = ToolSettings(version=self._string(values, "tf_version").strip())

        if self.errors:
            raise ConfigValidationError(self.errors)

        return PluginSettings(config=config, netrc=netrc, tool=tool)

    def parse_init_options(self, raw: Any) -> InitOptions:
        """
        Parse init options from a JSON or YAML mapping.

        An empty value yields default options. Errors are collected rather
        than raised so they can be reported with the rest of the config.
        """
        if isinstance(raw, Mapping):
            data: Any = dict(raw)
        elif isinstance(raw, str):
            if not raw.strip():
                return InitOptions()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                # Not JSON (tab-indented JSON is not valid YAML), try YAML
                try:
                    data = yaml.safe_load(raw)
                except yaml.YAMLError as e:
                    self._add_error(f"Failed to parse init options: {e}", "init_options")
                    return InitOptions()
        else:
            self._add_error(f"init options must be a mapping, got {type(raw).__name__}", "init_options")
            return InitOptions()

        if data is None:
            return InitOptions()

        if not isinstance(data, dict):
            self._add_error(f"init options must be a mapping, got {type(data).__name__}", "init_options")
            return InitOptions()

        unknown = sorted(str(k) for k in data if k not in self.INIT_OPTION_KEYS)
        if unknown:
            self._add_error(f"Unknown init options: {', '.join(unknown)}", "init_options")

        backend_config = data.get("backend-config") or []
        if isinstance(backend_config, str):
            backend_config = [backend_config]
        if not isinstance(backend_config, list) or not all(isinstance(v, str) for v in backend_config):
            self._add_error("'backend-config' must be a list of strings", "init_options.backend-config")
            backend_config = []

        lock = data.get("lock")
        if lock is not None and not isinstance(lock, bool):
            self._add_error(f"'lock' must be a boolean, got {type(lock).__name__}", "init_options.lock")
            lock = None

        lock_timeout = data.get("lock-timeout")
        if lock_timeout is None:
            lock_timeout = ""
        elif not isinstance(lock_timeout, str):
            self._add_error(
                f"'lock-timeout' must be a string, got {type(lock_timeout).__name__}",
                "init_options.lock-timeout",
            )
            lock_timeout = ""

        return InitOptions(
            backend_config=tuple(backend_config),
            lock=lock,
            lock_timeout=lock_timeout,
        )

    def _string(self, values: Mapping[str, Any], key: str, default: str = "") -> str:
        value = values.get(key)
        if value is None:
            return default
        return str(value)

    def _bool(self, values: Mapping[str, Any], key: str) -> bool:
        value = values.get(key)
        if value is None or isinstance(value, bool):
            return bool(value)
        text = str(value).strip().lower()
        if text in TRUE_VALUES:
            return True
        if text in FALSE_VALUES:
            return False
        self._add_error(f"expected a boolean, got '{value}'", key)
        return False

    def _add_error(self, message: str, path: str = ""):
        self.errors.append(ValidationError(message=message, path=path))

