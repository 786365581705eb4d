"""
Terraform output parsing and env-file rendering.

The output query returns a JSON object keyed by output name:

    {"<key>": {"sensitive": bool, "type": any, "value": any}, ...}

Each entry becomes one `[export ]<prefix><key>=<value>` line. Sensitive
values are replaced by REDACTION_TOKEN everywhere, including the env-file.
"""

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Union

from tfoutput.config import ExecutionConfig
from tfoutput.exceptions import PersistenceError
from tfoutput.security.secrets import SecretsManager


logger = logging.getLogger(__name__)

REDACTION_TOKEN = "XXXXXXX"
ENV_FILE_MODE = 0o600


class ValueKind(str, Enum):
    """Shapes a terraform output value can take."""
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


@dataclass(frozen=True)
class OutputValue:
    """Tagged output value; `data` is the decoded JSON value."""
    kind: ValueKind
    data: Any

    @classmethod
    def from_json(cls, data: Any) -> "OutputValue":
        if isinstance(data, dict):
            return cls(ValueKind.MAPPING, data)
        if isinstance(data, list):
            return cls(ValueKind.SEQUENCE, data)
        return cls(ValueKind.SCALAR, data)


def _render_scalar(data: Any) -> str:
    if data is None:
        return ""
    if isinstance(data, bool):
        return "true" if data else "false"
    if isinstance(data, float) and data.is_integer():
        return str(int(data))
    return str(data)


def render_value(value: OutputValue) -> str:
    """Textual form of an output value as written to the env-file."""
    if value.kind == ValueKind.SCALAR:
        return _render_scalar(value.data)
    return json.dumps(value.data, separators=(",", ":"), sort_keys=True)


@dataclass(frozen=True)
class OutputEntry:
    """One record from the output query."""
    key: str
    sensitive: bool = False
    type: Any = ""  # Informational only
    value: OutputValue = field(default_factory=lambda: OutputValue(ValueKind.SCALAR, None))

    @property
    def display_value(self) -> str:
        if self.sensitive:
            return REDACTION_TOKEN
        return render_value(self.value)


def parse_outputs(raw: Union[bytes, str]) -> Dict[str, OutputEntry]:
    """
    Parse output query bytes into entries keyed by output name.

    Unparseable or empty input yields an empty mapping: a configuration with
    no outputs prints nothing at all on some tool versions.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning(f"Could not parse output JSON, treating as no outputs: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Output JSON must be an object, got {type(data).__name__}; treating as no outputs")
        return {}

    entries: Dict[str, OutputEntry] = {}
    for key, body in data.items():
        if not isinstance(body, dict):
            logger.warning(f"Skipping output '{key}': expected an object, got {type(body).__name__}")
            continue
        entries[key] = OutputEntry(
            key=key,
            sensitive=body.get("sensitive") is True,
            type=body.get("type", ""),
            value=OutputValue.from_json(body.get("value")),
        )

    return entries


def render_line(entry: OutputEntry, prefix: str, export: bool = False) -> str:
    """Render one env assignment, masked when the entry is sensitive."""
    export_prefix = "export " if export else ""
    return f"{export_prefix}{prefix}{entry.key}={entry.display_value}\n"


def write_env_file(path: Path, content: bytes) -> None:
    """Create or truncate `path` with owner-only permissions."""
    try:
        fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, ENV_FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        os.chmod(path, ENV_FILE_MODE)
    except OSError as e:
        raise PersistenceError(f"Failed to write env file {path}: {e}") from e


@dataclass
class TransformResult:
    """Rendered assignments and the bytes persisted to the env-file."""
    entries: Dict[str, OutputEntry]
    lines: List[str]
    content: bytes
    env_file: Path


class OutputTransformer:
    """Turns output query bytes into a report and an env-file."""

    def __init__(
        self,
        config: ExecutionConfig,
        report_stream: Optional[TextIO] = None,
        secrets_manager: Optional[SecretsManager] = None,
        base_dir: Optional[Path] = None,
    ):
        """
        Args:
            config: Run configuration (prefix, export mode, env-file path)
            report_stream: Where the report is printed (default: sys.stdout)
            secrets_manager: Receives sensitive values so logs mask them
            base_dir: Directory a relative env-file path is resolved against
        """
        self.config = config
        self.report_stream = report_stream
        self.secrets_manager = secrets_manager
        self.base_dir = base_dir

    @property
    def env_file(self) -> Path:
        path = Path(self.config.env_file)
        if self.base_dir is not None and not path.is_absolute():
            path = self.base_dir / path
        return path

    def transform(self, raw: Union[bytes, str]) -> TransformResult:
        entries = parse_outputs(raw)
        stream = self.report_stream or sys.stdout

        print("Outputs:", file=stream)

        lines = []
        buffer = bytearray()
        for key in sorted(entries):
            entry = entries[key]
            if entry.sensitive and self.secrets_manager is not None and isinstance(entry.value.data, str):
                self.secrets_manager.register(entry.value.data)

            line = render_line(entry, self.config.env_prefix, self.config.export_envs)
            stream.write(line)
            lines.append(line)
            buffer.extend(line.encode("utf-8"))

        stream.flush()

        content = bytes(buffer)
        env_file = self.env_file
        write_env_file(env_file, content)
        logger.info(f"Wrote {len(lines)} output(s) to {env_file}")

        return TransformResult(entries=entries, lines=lines, content=content, env_file=env_file)
