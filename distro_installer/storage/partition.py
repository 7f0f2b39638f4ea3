"""Partition layout planning with parted.

Range Computation:
    Capacity is the disk size in whole MiB. A cursor starts at 1MiB to leave
    room for the GPT header and alignment, then each partition in declaration
    order takes ``[cursor, cursor + span)``:

    - exact byte sizes round up to the next MiB
    - percentages take ``floor(capacity * percent / 100)``, at least 1MiB
    - the single remainder partition takes ``[cursor, capacity)`` once every
      sized partition has been placed

    Partitions after a remainder partition are placed directly after the
    sized ones before it, and the remainder takes whatever is left at the end.

Command Emission:
    All ranges are computed before any command is produced, so an invalid
    layout yields an error and no commands at all:

        parted <disk> --script mklabel gpt
        parted <disk> --script mkpart <id> [<fs-hint>] <start>MiB <end>MiB
        parted <disk> --script set <index> <flag> on
"""

from __future__ import annotations

import re
from typing import Callable, Optional

from distro_installer.domain import (
    MIB,
    DiskIdentifier,
    DiskMode,
    DiskPlan,
    FileSystem,
    FileSystemKind,
    PartitionFlag,
    PartitionRange,
    PartitionSize,
    PartitionSpec,
    SizeKind,
)
from distro_installer.logging import LoggerFactory
from distro_installer.storage.command import CommandSpec
from distro_installer.storage.exceptions import PartitionLayoutError

log = LoggerFactory.for_disk()

ALIGNMENT_MIB = 1
ESP_SIZE_BYTES = 512 * MIB
ESP_MOUNTPOINT = "/boot/efi"

_PARTITION_SEPARATOR_NAMES = re.compile(r"(nvme\d+n\d+|mmcblk\d+|loop\d+|nbd\d+)$")

_FILESYSTEM_HINTS = {
    FileSystemKind.EXT4: "ext4",
    FileSystemKind.BTRFS: "btrfs",
    FileSystemKind.XFS: "xfs",
    FileSystemKind.FAT32: "fat32",
}


def validate_plan(disk: DiskIdentifier, plan: DiskPlan) -> None:
    """Check that a plan targets the selected disk and declares partitions."""
    if plan.target.path != disk.path:
        raise PartitionLayoutError(
            f"disk mismatch between selection ({disk.path}) and plan ({plan.target.path})"
        )
    if not plan.partitions:
        raise PartitionLayoutError("partition plan must contain at least one partition")


def default_plan_for_disk(disk: DiskIdentifier) -> DiskPlan:
    """ESP followed by an ext4 root filling the rest of the disk."""
    boot_partition = PartitionSpec(
        id="esp",
        mountpoint=ESP_MOUNTPOINT,
        filesystem=FileSystem.fat32(),
        size=PartitionSize.exact_bytes(ESP_SIZE_BYTES),
        flags=(PartitionFlag.esp(), PartitionFlag.boot()),
    )
    root_partition = PartitionSpec(
        id="root",
        mountpoint="/",
        filesystem=FileSystem.ext4(),
        size=PartitionSize.remainder(),
    )
    return DiskPlan(
        target=disk,
        mode=DiskMode.USE_ENTIRE_DISK,
        partitions=(boot_partition, root_partition),
    )


def describe_partition(spec: PartitionSpec) -> str:
    mountpoint = spec.mountpoint if spec.mountpoint is not None else "unassigned"
    return f"{spec.id}: {mountpoint} ({spec.filesystem.label})"


def filesystem_hint(filesystem: FileSystem) -> Optional[str]:
    return _FILESYSTEM_HINTS.get(filesystem.kind)


def partition_device_path(disk_path: str, index: int) -> str:
    """Device node for the 1-based partition ``index`` of ``disk_path``.

    /dev/sda -> /dev/sda1, /dev/nvme0n1 -> /dev/nvme0n1p1,
    /dev/mmcblk0 -> /dev/mmcblk0p1
    """
    if index < 1:
        raise ValueError(f"partition index must be >= 1, got {index}")
    needs_separator = bool(
        disk_path
        and (disk_path[-1].isdigit() or _PARTITION_SEPARATOR_NAMES.search(disk_path))
    )
    suffix = "p" if needs_separator else ""
    return f"{disk_path}{suffix}{index}"


def partition_size_to_mib(
    size: PartitionSize, capacity_mib: int, partition_id: Optional[str] = None
) -> int:
    """Convert a sized (non-remainder) declaration into a MiB span."""
    if size.kind is SizeKind.EXACT_BYTES:
        if size.value <= 0:
            raise PartitionLayoutError("partition size must be > 0 bytes", partition_id)
        span_mib = -(-size.value // MIB)
    elif size.kind is SizeKind.PERCENTAGE:
        if size.value < 1 or size.value > 100:
            raise PartitionLayoutError(
                f"invalid percentage size: {size.value}", partition_id
            )
        span_mib = max((capacity_mib * size.value) // 100, 1)
    else:
        raise PartitionLayoutError(
            "remainder partitions have no fixed size", partition_id
        )

    if span_mib <= 0:
        raise PartitionLayoutError("computed partition size is zero", partition_id)
    return span_mib


def compute_ranges(plan: DiskPlan) -> list[PartitionRange]:
    """Assign a non-overlapping MiB range to every partition of ``plan``."""
    capacity_mib = plan.target.size_bytes // MIB
    if capacity_mib == 0:
        raise PartitionLayoutError(
            f"target disk {plan.target.path} is too small to partition"
        )

    ranges: list[Optional[PartitionRange]] = [None] * len(plan.partitions)
    cursor_mib = ALIGNMENT_MIB
    remainder_index: Optional[int] = None

    for index, spec in enumerate(plan.partitions):
        if spec.size.is_remainder:
            if remainder_index is not None:
                raise PartitionLayoutError(
                    "only one remainder partition is supported", spec.id
                )
            remainder_index = index
            continue
        span_mib = partition_size_to_mib(spec.size, capacity_mib, spec.id)
        ranges[index] = PartitionRange(cursor_mib, cursor_mib + span_mib)
        cursor_mib += span_mib

    if remainder_index is not None:
        remainder_id = plan.partitions[remainder_index].id
        if cursor_mib >= capacity_mib:
            raise PartitionLayoutError(
                "no remaining space for remainder partition", remainder_id
            )
        ranges[remainder_index] = PartitionRange(cursor_mib, capacity_mib)

    final_ranges = []
    for spec, partition_range in zip(plan.partitions, ranges):
        if partition_range is None:
            raise PartitionLayoutError("missing range", spec.id)
        if partition_range.end_mib <= partition_range.start_mib:
            raise PartitionLayoutError("invalid range computed", spec.id)
        final_ranges.append(partition_range)
    return final_ranges


def _parted(disk_path: str, *args: str) -> CommandSpec:
    return CommandSpec("parted", (disk_path, "--script", *args))


def build_command_plan(plan: DiskPlan) -> list[CommandSpec]:
    """Commands that write a GPT label and create every partition of ``plan``."""
    disk_path = plan.target.path
    ranges = compute_ranges(plan)

    commands = [_parted(disk_path, "mklabel", "gpt")]
    for index, (spec, partition_range) in enumerate(zip(plan.partitions, ranges), 1):
        mkpart = ["mkpart", spec.id]
        hint = filesystem_hint(spec.filesystem)
        if hint:
            mkpart.append(hint)
        mkpart.append(f"{partition_range.start_mib}MiB")
        mkpart.append(f"{partition_range.end_mib}MiB")
        commands.append(_parted(disk_path, *mkpart))

        for flag in spec.flags:
            if not flag.name:
                continue
            commands.append(_parted(disk_path, "set", str(index), flag.name, "on"))

    log.debug(
        f"Planned {len(plan.partitions)} partitions on {disk_path} "
        f"({len(commands)} parted commands)"
    )
    return commands


def apply_plan(plan: DiskPlan, run: Callable[[CommandSpec], object]) -> None:
    """Pass every partitioning command to ``run`` in order.

    The first exception raised by ``run`` propagates and stops the sequence.
    """
    for command in build_command_plan(plan):
        run(command)
