"""Tests for storage/command.py - command specs and executors."""
import subprocess
from unittest.mock import Mock

import pytest

from distro_installer.storage.command import (
    CommandOutput,
    CommandSpec,
    ScriptedCommandExecutor,
    SystemCommandExecutor,
    default_executor,
    run_checked,
    run_command_json,
)
from distro_installer.storage.exceptions import (
    CommandFailedError,
    CommandSpawnError,
    ProbeParseError,
)


class TestCommandSpec:
    """Tests for the CommandSpec value type."""

    def test_builder_appends_in_order(self):
        spec = CommandSpec("mount").arg("/dev/sda2").arg("/mnt")

        assert spec.args == ("/dev/sda2", "/mnt")
        assert spec.argv == ["mount", "/dev/sda2", "/mnt"]

    def test_with_args(self):
        spec = CommandSpec("pacstrap", ("/mnt",)).with_args(["base", "sudo"])

        assert spec.args == ("/mnt", "base", "sudo")

    def test_builders_do_not_mutate(self):
        base = CommandSpec("sync")
        base.arg("-f")

        assert base.args == ()

    def test_args_converted_to_strings(self):
        spec = CommandSpec("parted", ["/dev/sda", "set", 1, "esp", "on"])

        assert spec.args == ("/dev/sda", "set", "1", "esp", "on")

    def test_equality_and_hash(self):
        first = CommandSpec("lsblk", ("--json",))
        second = CommandSpec("lsblk", ["--json"])

        assert first == second
        assert len({first, second}) == 1

    def test_display_quotes_arguments(self):
        spec = CommandSpec("sh", ("-c", "genfstab -U /mnt >> /mnt/etc/fstab"))

        assert spec.display() == "sh -c 'genfstab -U /mnt >> /mnt/etc/fstab'"
        assert str(spec) == spec.display()


class TestSystemCommandExecutor:
    """Tests for SystemCommandExecutor.run()."""

    def test_successful_command(self, mocker):
        mock_run = mocker.patch(
            "distro_installer.storage.command.subprocess.run",
            return_value=Mock(returncode=0, stdout="hello\n", stderr=""),
        )

        output = SystemCommandExecutor().run(CommandSpec("echo", ("hello",)))

        assert output == CommandOutput("echo", ("hello",), "hello\n", "", 0)
        assert output.success
        mock_run.assert_called_once_with(
            ["echo", "hello"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )

    def test_non_zero_exit_is_not_an_exception(self, mocker):
        mocker.patch(
            "distro_installer.storage.command.subprocess.run",
            return_value=Mock(returncode=2, stdout="", stderr="bad option\n"),
        )

        output = SystemCommandExecutor().run(CommandSpec("false"))

        assert not output.success
        assert output.returncode == 2
        assert output.stderr == "bad option\n"

    def test_none_streams_become_empty_strings(self, mocker):
        mocker.patch(
            "distro_installer.storage.command.subprocess.run",
            return_value=Mock(returncode=0, stdout=None, stderr=None),
        )

        output = SystemCommandExecutor().run(CommandSpec("true"))

        assert output.stdout == ""
        assert output.stderr == ""

    def test_missing_binary_raises_spawn_error(self, mocker):
        mocker.patch(
            "distro_installer.storage.command.subprocess.run",
            side_effect=FileNotFoundError(2, "No such file or directory"),
        )

        with pytest.raises(CommandSpawnError, match="Failed to execute pacstrap") as exc_info:
            SystemCommandExecutor().run(CommandSpec("pacstrap", ("/mnt", "base")))

        assert exc_info.value.program == "pacstrap"
        assert exc_info.value.args_list == ["/mnt", "base"]
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)


class TestScriptedCommandExecutor:
    """Tests for the in-memory executor double."""

    def test_returns_scripted_output(self, scripted_executor):
        spec = CommandSpec("lsblk", ("--json",))
        scripted_executor.script(spec, stdout="{}", stderr="warn", returncode=3)

        output = scripted_executor.run(spec)

        assert output.stdout == "{}"
        assert output.stderr == "warn"
        assert output.returncode == 3

    def test_unscripted_command_succeeds(self, scripted_executor):
        output = scripted_executor.run(CommandSpec("sync"))

        assert output.success
        assert output.stdout == ""

    def test_strict_rejects_unscripted_command(self, strict_executor):
        with pytest.raises(CommandSpawnError, match="no scripted response"):
            strict_executor.run(CommandSpec("sync"))

    def test_scripted_error_is_raised(self, scripted_executor):
        spec = CommandSpec("mkfs.ext4", ("-F", "/dev/sda2"))
        scripted_executor.script_error(
            spec, CommandSpawnError(spec.program, spec.args, "not found")
        )

        with pytest.raises(CommandSpawnError, match="not found"):
            scripted_executor.run(spec)

    def test_records_calls_in_order(self, scripted_executor):
        first = CommandSpec("sync")
        second = CommandSpec("umount", ("/mnt",))

        scripted_executor.run(first)
        scripted_executor.run(second)

        assert scripted_executor.calls == [first, second]

    def test_matches_on_arguments(self, scripted_executor):
        scripted_executor.script(CommandSpec("cat", ("a",)), stdout="A")

        assert scripted_executor.run(CommandSpec("cat", ("a",))).stdout == "A"
        assert scripted_executor.run(CommandSpec("cat", ("b",))).stdout == ""


class TestRunChecked:
    """Tests for run_checked() and run_command_json()."""

    def test_success_returns_output(self, scripted_executor):
        spec = CommandSpec("uname")
        scripted_executor.script(spec, stdout="Linux\n")

        assert run_checked(scripted_executor, spec).stdout == "Linux\n"

    def test_failure_raises_with_stderr(self, scripted_executor):
        spec = CommandSpec("lsblk", ("--json",))
        scripted_executor.script(spec, stderr="permission denied\n", returncode=32)

        with pytest.raises(CommandFailedError, match="exit code 32: permission denied") as exc_info:
            run_checked(scripted_executor, spec)

        assert exc_info.value.returncode == 32
        assert exc_info.value.command_line == "lsblk --json"

    def test_json_decoded(self, scripted_executor):
        spec = CommandSpec("lsblk", ("--json",))
        scripted_executor.script(spec, stdout='{"blockdevices": []}')

        assert run_command_json(scripted_executor, spec) == {"blockdevices": []}

    def test_invalid_json(self, scripted_executor):
        spec = CommandSpec("lsblk", ("--json",))
        scripted_executor.script(spec, stdout="not json")

        with pytest.raises(ProbeParseError, match="Failed to parse output from lsblk --json"):
            run_command_json(scripted_executor, spec)


class TestDefaultExecutor:
    def test_keeps_given_executor(self, scripted_executor):
        assert default_executor(scripted_executor) is scripted_executor

    def test_falls_back_to_system(self):
        assert isinstance(default_executor(), SystemCommandExecutor)
