"""Custom exceptions for installer operations.

This module defines a hierarchy of exceptions so callers can tell apart
invalid input, processes that could not be started, processes that ran and
failed, and probe output that did not match the expected schema.

Exception Hierarchy:
    InstallerError (base)
        ├── ValidationError
        │   ├── ConfigurationError
        │   ├── PartitionLayoutError
        │   └── FilesystemError
        ├── CommandError
        │   ├── CommandSpawnError
        │   └── CommandFailedError
        └── ProbeParseError

Usage:
    from distro_installer.storage.exceptions import PartitionLayoutError

    if span_mib == 0:
        raise PartitionLayoutError("computed partition size is zero", "root")
"""

from __future__ import annotations

import shlex
from typing import Optional, Sequence


def _format_invocation(program: str, args: Sequence[str]) -> str:
    return " ".join(shlex.quote(part) for part in [program, *args])


class InstallerError(Exception):
    """Base exception for all installer operations."""


class ValidationError(InstallerError):
    """Input was rejected before any command was issued."""


class ConfigurationError(ValidationError):
    """A configuration field holds an unusable value."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid configuration for {field}: {reason}")


class PartitionLayoutError(ValidationError):
    """A partition layout cannot be turned into valid ranges."""

    def __init__(self, message: str, partition_id: Optional[str] = None):
        self.partition_id = partition_id
        if partition_id is not None:
            message = f"Partition {partition_id}: {message}"
        super().__init__(message)


class FilesystemError(ValidationError):
    """A filesystem or mountpoint declaration is unusable."""

    def __init__(self, message: str, partition_id: Optional[str] = None):
        self.partition_id = partition_id
        if partition_id is not None:
            message = f"Partition {partition_id}: {message}"
        super().__init__(message)


class CommandError(InstallerError):
    """Base exception for external command problems."""

    def __init__(self, message: str, program: str, args: Sequence[str] = ()):
        self.program = program
        self.args_list = list(args)
        super().__init__(message)

    @property
    def command_line(self) -> str:
        return _format_invocation(self.program, self.args_list)


class CommandSpawnError(CommandError):
    """The process could not be started at all."""

    def __init__(self, program: str, args: Sequence[str], reason: str):
        self.reason = reason
        super().__init__(f"Failed to execute {program}: {reason}", program, args)


class CommandFailedError(CommandError):
    """The process ran but exited with a non-zero status."""

    def __init__(
        self,
        program: str,
        args: Sequence[str],
        returncode: int,
        stderr: str = "",
    ):
        self.returncode = returncode
        self.stderr = stderr
        message = (
            f"Command failed ({_format_invocation(program, args)}) "
            f"with exit code {returncode}"
        )
        detail = stderr.strip()
        if detail:
            message += f": {detail}"
        super().__init__(message, program, args)


class ProbeParseError(InstallerError):
    """Structured probe output did not match the expected schema."""

    def __init__(self, program: str, args: Sequence[str], reason: str):
        self.program = program
        self.args_list = list(args)
        self.reason = reason
        super().__init__(
            f"Failed to parse output from {_format_invocation(program, args)}: {reason}"
        )
