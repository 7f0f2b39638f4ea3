"""Block device detection using lsblk.

Disk Detection:
    Runs lsblk with JSON output, byte sizes and device-only rows:

        lsblk --json --bytes -d -o NAME,SIZE,MODEL,TYPE

    Only rows with TYPE == "disk" are kept, so partitions, loop devices and
    optical drives never show up as install targets.

Parsing Rules:
    - path is /dev/<name>
    - size may be reported as a JSON number or a numeric string
    - an empty or whitespace-only MODEL becomes ``label=None``

Failures:
    A failing lsblk raises CommandFailedError (or CommandSpawnError when it
    is missing). Output that does not match the schema raises
    ProbeParseError. No partial result is ever returned.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from distro_installer.domain import DiskIdentifier
from distro_installer.logging import LoggerFactory
from distro_installer.storage.command import (
    CommandExecutor,
    CommandSpec,
    default_executor,
    run_command_json,
)
from distro_installer.storage.exceptions import ProbeParseError

log = LoggerFactory.for_disk()

LSBLK_COMMAND = CommandSpec(
    "lsblk", ("--json", "--bytes", "-d", "-o", "NAME,SIZE,MODEL,TYPE")
)


def _schema_error(reason: str) -> ProbeParseError:
    return ProbeParseError(LSBLK_COMMAND.program, LSBLK_COMMAND.args, reason)


def _parse_size(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise _schema_error(f"invalid size for {name}: {value!r}")
    if isinstance(value, int):
        size = value
    elif isinstance(value, str) and value.strip().isdigit():
        size = int(value.strip())
    else:
        raise _schema_error(f"invalid size for {name}: {value!r}")
    if size < 0:
        raise _schema_error(f"negative size for {name}: {size}")
    return size


def _parse_label(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise _schema_error(f"invalid model value: {value!r}")
    stripped = value.strip()
    return stripped or None


def parse_lsblk_devices(data: Any) -> list[DiskIdentifier]:
    """Turn decoded lsblk JSON into whole-disk identifiers."""
    if not isinstance(data, dict):
        raise _schema_error("top-level value is not an object")
    rows = data.get("blockdevices", [])
    if not isinstance(rows, list):
        raise _schema_error("blockdevices is not a list")

    disks = []
    for row in rows:
        if not isinstance(row, dict):
            raise _schema_error(f"device entry is not an object: {row!r}")
        for key in ("name", "size", "type"):
            if key not in row:
                raise _schema_error(f"device entry missing {key!r}")
        name = row["name"]
        if not isinstance(name, str) or not name:
            raise _schema_error(f"invalid device name: {name!r}")
        size_bytes = _parse_size(row["size"], name)
        label = _parse_label(row.get("model"))
        if row["type"] != "disk":
            continue
        disks.append(
            DiskIdentifier(path=f"/dev/{name}", size_bytes=size_bytes, label=label)
        )
    return disks


def list_disks(executor: Optional[CommandExecutor] = None) -> list[DiskIdentifier]:
    """Probe the live system for whole disks."""
    data = run_command_json(default_executor(executor), LSBLK_COMMAND)
    disks = parse_lsblk_devices(data)
    if disks:
        log.debug(
            f"lsblk found {len(disks)} disks: "
            + ", ".join(disk.path for disk in disks)
        )
    else:
        log.debug("lsblk found no disks")
    return disks


def match_disk(
    disks: Iterable[DiskIdentifier], query: str
) -> Optional[DiskIdentifier]:
    """First disk whose device path (/dev/sda) or name (sda) equals ``query``."""
    for disk in disks:
        if query in (disk.path, disk.name):
            return disk
    return None


def find_disk(
    path: str, executor: Optional[CommandExecutor] = None
) -> Optional[DiskIdentifier]:
    return match_disk(list_disks(executor), path)
