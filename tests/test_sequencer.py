"""Tests for the setup command sequence."""

import io
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from tfoutput.config import ExecutionConfig, InitOptions
from tfoutput.exec import CommandSequencer, CommandStep, EnvironmentContext, StepExecutor, StepResult
from tfoutput.exec.sequencer import (
    delete_cache_command,
    init_args,
    install_ca_cert_command,
    resolve_working_dir,
)


class TestInitArgs:
    """Test flags derived from InitOptions."""

    def test_defaults_only_disable_input(self):
        assert init_args(InitOptions()) == ["init", "-input=false"]

    @pytest.mark.parametrize("options", [
        InitOptions(),
        InitOptions(backend_config=("a=b",)),
        InitOptions(lock_timeout="10s"),
    ])
    def test_unset_lock_has_no_lock_flag(self, options):
        args = init_args(options)
        assert not any(arg.startswith("-lock=") for arg in args)

    @pytest.mark.parametrize("lock, expected", [(True, "-lock=true"), (False, "-lock=false")])
    def test_set_lock_has_exactly_one_flag(self, lock, expected):
        args = init_args(InitOptions(lock=lock, lock_timeout="5s"))

        lock_flags = [arg for arg in args if arg.startswith("-lock=")]
        assert lock_flags == [expected]

    def test_full_options_in_order(self):
        options = InitOptions(
            backend_config=("bucket=state", "key=app.tfstate"),
            lock=False,
            lock_timeout="30s",
        )

        assert init_args(options) == [
            "init",
            "-backend-config=bucket=state",
            "-backend-config=key=app.tfstate",
            "-lock=false",
            "-lock-timeout=30s",
            "-input=false",
        ]


class TestBuildSteps:

    def test_canonical_order_without_ca(self, tmp_path):
        sequencer = CommandSequencer(ExecutionConfig(), executor=StepExecutor(tmp_path))

        steps = sequencer.build_steps()

        assert [step.name for step in steps] == ["version", "delete_cache", "init", "get"]
        assert steps[0].argv == ["terraform", "version"]
        assert steps[2].argv[-1] == "-input=false"
        assert steps[1].argv == ["rm", "-rf", ".terraform"]
        assert steps[3].argv == ["terraform", "get"]

    def test_ca_step_inserted_after_version(self, tmp_path):
        config = ExecutionConfig(ca_cert="CERT", data_dir="custom-data")
        sequencer = CommandSequencer(config, executor=StepExecutor(tmp_path), cert_path=tmp_path / "ca.crt")

        steps = sequencer.build_steps()

        assert [step.name for step in steps] == ["version", "install_ca_cert", "delete_cache", "init", "get"]
        assert steps[1].argv == ["update-ca-certificates"]
        assert steps[2].argv == ["rm", "-rf", "custom-data"]

    def test_ca_cert_written_on_prepare(self, tmp_path):
        cert_path = tmp_path / "ca.crt"
        step = install_ca_cert_command("-----BEGIN CERTIFICATE-----\n", cert_path)

        assert not cert_path.exists()
        step.prepare()
        assert cert_path.read_text() == "-----BEGIN CERTIFICATE-----\n"

    def test_ca_cert_written_as_utf8(self, tmp_path):
        cert_path = tmp_path / "ca.crt"
        blob = "# Zertifizierungsstelle \u00e9\u00fc\n-----BEGIN CERTIFICATE-----\n"
        step = install_ca_cert_command(blob, cert_path)

        step.prepare()

        assert cert_path.read_bytes() == blob.encode("utf-8")


class TestWorkingDirectory:

    def test_root_dir_joined_to_base(self, tmp_path):
        assert resolve_working_dir("infra", base=tmp_path) == tmp_path / "infra"

    def test_no_root_dir_uses_base(self, tmp_path):
        assert resolve_working_dir("", base=tmp_path) == tmp_path

    def test_default_executor_uses_root_dir(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        sequencer = CommandSequencer(ExecutionConfig(root_dir="infra", sensitive=True))

        assert sequencer.executor.working_dir == Path.cwd() / "infra"
        assert sequencer.executor.trace is False


class TestRun:
    """Test sequential execution and stop-on-failure."""

    def _executor(self, failing=None):
        executor = MagicMock(spec=StepExecutor)

        def side_effect(step, context):
            exit_code = 1 if step.name == failing else 0
            return StepResult(step_name=step.name, exit_code=exit_code)

        executor.execute.side_effect = side_effect
        return executor

    def test_all_steps_run_in_order(self):
        executor = self._executor()
        sequencer = CommandSequencer(ExecutionConfig(), executor=executor)

        result = sequencer.run(EnvironmentContext())

        assert result.ok
        calls = [call.args[0].name for call in executor.execute.call_args_list]
        assert calls == ["version", "delete_cache", "init", "get"]

    def test_failure_stops_remaining_steps(self):
        executor = self._executor(failing="init")
        sequencer = CommandSequencer(ExecutionConfig(), executor=executor)

        result = sequencer.run(EnvironmentContext())

        assert not result.ok
        assert result.failed.step_name == "init"
        calls = [call.args[0].name for call in executor.execute.call_args_list]
        assert calls == ["version", "delete_cache", "init"]
        assert "get" not in calls

    def test_context_shared_by_every_step(self):
        executor = self._executor()
        context = EnvironmentContext(overrides={"TF_DATA_DIR": "x"})

        CommandSequencer(ExecutionConfig(), executor=executor).run(context)

        assert all(call.args[1] is context for call in executor.execute.call_args_list)

    def test_real_steps_stop_at_first_failure(self, tmp_path):
        trace = io.StringIO()
        executor = StepExecutor(tmp_path, trace=True, trace_stream=trace)
        steps = [
            CommandStep(name="first", argv=["sh", "-c", "true"]),
            CommandStep(name="second", argv=["sh", "-c", "exit 1"]),
            CommandStep(name="third", argv=["sh", "-c", "touch third"]),
        ]

        result = CommandSequencer(ExecutionConfig(), executor=executor).run(EnvironmentContext(), steps)

        assert result.failed.step_name == "second"
        assert len(result.results) == 2
        assert not (tmp_path / "third").exists()
        assert "touch third" not in trace.getvalue()


class TestDeleteCache:

    def test_delete_is_idempotent(self, tmp_path):
        data_dir = tmp_path / ".terraform"
        (data_dir / "modules").mkdir(parents=True)
        (data_dir / "modules" / "modules.json").write_text("{}")
        executor = StepExecutor(tmp_path, trace=False)

        first = executor.execute(delete_cache_command(".terraform"))
        assert first.ok
        assert not data_dir.exists()

        second = executor.execute(delete_cache_command(".terraform"))
        assert second.ok
        assert not data_dir.exists()
