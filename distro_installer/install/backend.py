"""Installation backend: plan building and streaming execution.

The backend never holds on to live configuration while it works. It takes a
deep copy under the state lock, builds an ``InstallPlan`` from that copy and
runs the plan strictly in order, one blocking command at a time.

Log Stream:
    Every line handed to ``on_log`` follows one of these shapes, in order:

        ==> <Stage title>: <summary>       stage header
        $ <command line>                   before each command runs
        <stdout line>                      each non-blank stdout line
        stderr: <stderr line>              each non-blank stderr line
        error: <reason>                    once, on the first failure

After an ``error:`` line nothing else from the plan runs: the rest of the
current stage and every later stage are abandoned. There is no retry and no
rollback, and a running command cannot be cancelled or timed out.
"""

from __future__ import annotations

import copy
import threading
from typing import Callable, Optional

from distro_installer.config.settings import InstallerConfig
from distro_installer.domain import DiskIdentifier, InstallPlan
from distro_installer.logging import LoggerFactory, operation_context
from distro_installer.storage.command import (
    CommandExecutor,
    CommandOutput,
    CommandSpec,
    SystemCommandExecutor,
)
from distro_installer.storage.devices import list_disks
from distro_installer.storage.exceptions import CommandError

from .tasks import build_plan

LogSink = Callable[[str], None]

log = LoggerFactory.for_install(job_id="backend")


class SharedState:
    """Lock-guarded installer configuration shared with the front end."""

    def __init__(self, config: Optional[InstallerConfig] = None):
        self._config = config if config is not None else InstallerConfig()
        self._lock = threading.Lock()

    def snapshot(self) -> InstallerConfig:
        """Deep copy of the current configuration."""
        with self._lock:
            return copy.deepcopy(self._config)

    def update(self, mutate: Callable[[InstallerConfig], None]) -> None:
        with self._lock:
            mutate(self._config)


class Backend:
    def __init__(
        self,
        state: Optional[SharedState] = None,
        executor: Optional[CommandExecutor] = None,
    ):
        self.state = state if state is not None else SharedState()
        self.executor = executor if executor is not None else SystemCommandExecutor()

    def list_disks(self) -> list[DiskIdentifier]:
        return list_disks(self.executor)

    def begin_installation(self) -> InstallPlan:
        """Build (but do not run) the plan for the current configuration."""
        plan = build_plan(self.state.snapshot())
        for step in plan:
            log.info(
                f"Scheduled {step.stage.title}: {step.summary} "
                f"({len(step.commands)} commands)"
            )
        return plan

    def execute_plan_stream(self, plan: InstallPlan, on_log: LogSink) -> bool:
        """Run ``plan`` in order, streaming progress lines to ``on_log``.

        Returns True only if every command of every stage succeeded.
        """
        for step in plan:
            on_log(f"==> {step.stage.title}: {step.summary}")
            log.info(f"Starting stage {step.stage.title}")
            for command in step.commands:
                if not self._run_streamed(command, on_log):
                    log.error(f"Installation aborted during {step.stage.title}")
                    return False
        log.success("All install stages completed")
        return True

    def _run_streamed(self, command: CommandSpec, on_log: LogSink) -> bool:
        on_log(f"$ {command.display()}")
        try:
            output = self.executor.run(command)
        except CommandError as error:
            on_log(f"error: {error}")
            log.error(str(error))
            return False
        except Exception as error:
            on_log(f"error: failed to execute {command.program}: {error}")
            log.error(f"Failed to execute {command.program}: {error}")
            return False

        self._stream_output(output, on_log)
        if not output.success:
            message = (
                f"command failed with exit code {output.returncode}: "
                f"{command.display()}"
            )
            on_log(f"error: {message}")
            log.error(message)
            return False
        return True

    @staticmethod
    def _stream_output(output: CommandOutput, on_log: LogSink) -> None:
        for line in output.stdout.splitlines():
            if line.strip():
                on_log(line)
        for line in output.stderr.splitlines():
            if line.strip():
                on_log(f"stderr: {line}")

    def run_installation(self, on_log: LogSink) -> bool:
        """Build a fresh plan and execute it."""
        with operation_context("install") as op_log:
            plan = self.begin_installation()
            op_log.info(f"Executing {plan.command_count()} commands")
            return self.execute_plan_stream(plan, on_log)
