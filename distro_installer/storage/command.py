"""External command abstraction.

Planning code never spawns processes directly. It builds ``CommandSpec``
values and hands them to a ``CommandExecutor``:

    - SystemCommandExecutor: runs the program with stdin closed and
      stdout/stderr captured as text, blocking until it exits.
    - ScriptedCommandExecutor: in-memory double returning scripted results
      keyed by program and arguments, recording every call.

A process that cannot be started raises ``CommandSpawnError``. A process that
runs and exits non-zero is *not* an exception at this layer; it comes back as
a ``CommandOutput`` whose ``success`` is False, and callers decide what that
means.
"""

from __future__ import annotations

import json
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol, Union

from distro_installer.logging import LoggerFactory
from distro_installer.storage.exceptions import (
    CommandFailedError,
    CommandSpawnError,
    ProbeParseError,
)

log = LoggerFactory.for_command()
output_log = LoggerFactory.for_command_output()


@dataclass(frozen=True)
class CommandSpec:
    """A program invocation: program name plus ordered arguments."""

    program: str
    args: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(str(arg) for arg in self.args))

    def arg(self, value: str) -> CommandSpec:
        return CommandSpec(self.program, (*self.args, value))

    def with_args(self, values: Iterable[str]) -> CommandSpec:
        return CommandSpec(self.program, (*self.args, *values))

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def display(self) -> str:
        return " ".join(shlex.quote(part) for part in self.argv)

    def __str__(self) -> str:
        return self.display()


@dataclass(frozen=True)
class CommandOutput:
    program: str
    args: tuple[str, ...]
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @classmethod
    def for_spec(
        cls,
        spec: CommandSpec,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> CommandOutput:
        return cls(spec.program, spec.args, stdout, stderr, returncode)


class CommandExecutor(Protocol):
    def run(self, spec: CommandSpec) -> CommandOutput:
        ...


class SystemCommandExecutor:
    """Run commands on the live system."""

    def run(self, spec: CommandSpec) -> CommandOutput:
        log.debug(f"Running command: {spec.display()}")
        try:
            result = subprocess.run(
                spec.argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as error:
            log.debug(f"Unable to spawn {spec.program}: {error}")
            raise CommandSpawnError(spec.program, spec.args, str(error)) from error
        log.debug(f"Command completed with return code {result.returncode}")
        stdout = result.stdout or ""
        stderr = result.stderr or ""
        for line in stdout.splitlines():
            output_log.trace(f"stdout: {line}")
        for line in stderr.splitlines():
            output_log.trace(f"stderr: {line}")
        return CommandOutput(
            program=spec.program,
            args=spec.args,
            stdout=stdout,
            stderr=stderr,
            returncode=result.returncode,
        )


ScriptedResult = Union[CommandOutput, BaseException]


@dataclass
class ScriptedCommandExecutor:
    """Executor double returning scripted results keyed by program and args.

    Unscripted commands succeed with empty output unless ``strict`` is set,
    in which case they raise ``CommandSpawnError`` as a missing binary would.
    """

    responses: dict[tuple[str, tuple[str, ...]], ScriptedResult] = field(
        default_factory=dict
    )
    strict: bool = False
    calls: list[CommandSpec] = field(default_factory=list)

    def script(
        self,
        spec: CommandSpec,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> None:
        self.responses[(spec.program, spec.args)] = CommandOutput.for_spec(
            spec, stdout, stderr, returncode
        )

    def script_error(self, spec: CommandSpec, error: BaseException) -> None:
        self.responses[(spec.program, spec.args)] = error

    def run(self, spec: CommandSpec) -> CommandOutput:
        self.calls.append(spec)
        response = self.responses.get((spec.program, spec.args))
        if response is None:
            if self.strict:
                raise CommandSpawnError(spec.program, spec.args, "no scripted response")
            return CommandOutput.for_spec(spec)
        if isinstance(response, BaseException):
            raise response
        return response


def run_checked(executor: CommandExecutor, spec: CommandSpec) -> CommandOutput:
    """Run a command and raise CommandFailedError if it exits non-zero."""
    output = executor.run(spec)
    if not output.success:
        raise CommandFailedError(
            spec.program, spec.args, output.returncode, output.stderr
        )
    return output


def run_command_json(
    executor: CommandExecutor, spec: CommandSpec
) -> Any:
    """Run a command and decode its stdout as JSON."""
    output = run_checked(executor, spec)
    try:
        return json.loads(output.stdout)
    except json.JSONDecodeError as error:
        raise ProbeParseError(spec.program, spec.args, str(error)) from error


def default_executor(executor: Optional[CommandExecutor] = None) -> CommandExecutor:
    return executor if executor is not None else SystemCommandExecutor()
