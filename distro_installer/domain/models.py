"""Domain model for installation planning.

Value types describing the target disk, the partition layout requested for
it and the ordered stages an installation goes through. All types are
immutable so a plan built from a configuration snapshot cannot drift.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterator, Optional

if TYPE_CHECKING:
    from distro_installer.storage.command import CommandSpec

MIB = 1024 * 1024


def human_size(size_bytes: Optional[int]) -> str:
    if size_bytes is None:
        return "0B"
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}PB"


# ==============================================================================
# Disk Domain
# ==============================================================================


@dataclass(frozen=True)
class DiskIdentifier:
    """A whole disk reported by the block device probe."""

    path: str  # e.g., "/dev/sda"
    size_bytes: int
    label: Optional[str] = None  # Model string, None when the probe had none

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def size_mib(self) -> int:
        return self.size_bytes // MIB

    def format_label(self) -> str:
        """Format a human-readable label for display.

        Returns: e.g., "sda 20GB" or "nvme0n1 Samsung SSD 970 (465.8GB)"
        """
        size_str = re.sub(r"\.0([A-Z])", r"\1", human_size(self.size_bytes))
        if self.label:
            return f"{self.name} {self.label} ({size_str})"
        return f"{self.name} {size_str}"

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "size_bytes": self.size_bytes, "label": self.label}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiskIdentifier:
        return cls(
            path=data["path"],
            size_bytes=int(data["size_bytes"]),
            label=data.get("label"),
        )


# ==============================================================================
# Partition Domain
# ==============================================================================


class FileSystemKind(Enum):
    EXT4 = "ext4"
    BTRFS = "btrfs"
    XFS = "xfs"
    FAT32 = "fat32"
    SWAP = "swap"
    OTHER = "other"


@dataclass(frozen=True)
class FileSystem:
    """Filesystem to create on a partition.

    ``name`` only matters for ``FileSystemKind.OTHER``, where it is the
    format tool invoked verbatim.
    """

    kind: FileSystemKind
    name: str = ""

    @classmethod
    def ext4(cls) -> FileSystem:
        return cls(FileSystemKind.EXT4)

    @classmethod
    def btrfs(cls) -> FileSystem:
        return cls(FileSystemKind.BTRFS)

    @classmethod
    def xfs(cls) -> FileSystem:
        return cls(FileSystemKind.XFS)

    @classmethod
    def fat32(cls) -> FileSystem:
        return cls(FileSystemKind.FAT32)

    @classmethod
    def swap(cls) -> FileSystem:
        return cls(FileSystemKind.SWAP)

    @classmethod
    def other(cls, name: str) -> FileSystem:
        return cls(FileSystemKind.OTHER, name)

    @classmethod
    def parse(cls, value: str) -> FileSystem:
        """Map a configuration string onto a filesystem.

        Unknown names become custom filesystems, so "mkfs.f2fs" is kept as-is.
        """
        aliases = {
            "ext4": FileSystemKind.EXT4,
            "btrfs": FileSystemKind.BTRFS,
            "xfs": FileSystemKind.XFS,
            "fat32": FileSystemKind.FAT32,
            "vfat": FileSystemKind.FAT32,
            "swap": FileSystemKind.SWAP,
        }
        kind = aliases.get(value.strip().lower())
        if kind is None:
            return cls.other(value)
        return cls(kind)

    @property
    def is_swap(self) -> bool:
        return self.kind is FileSystemKind.SWAP

    @property
    def label(self) -> str:
        if self.kind is FileSystemKind.OTHER:
            return self.name
        return self.kind.value


class SizeKind(Enum):
    EXACT_BYTES = "bytes"
    PERCENTAGE = "percent"
    REMAINDER = "remainder"


@dataclass(frozen=True)
class PartitionSize:
    """Declared partition size; validated when ranges are computed."""

    kind: SizeKind
    value: int = 0

    @classmethod
    def exact_bytes(cls, size_bytes: int) -> PartitionSize:
        return cls(SizeKind.EXACT_BYTES, size_bytes)

    @classmethod
    def exact_mib(cls, size_mib: int) -> PartitionSize:
        return cls(SizeKind.EXACT_BYTES, size_mib * MIB)

    @classmethod
    def percentage(cls, percent: int) -> PartitionSize:
        return cls(SizeKind.PERCENTAGE, percent)

    @classmethod
    def remainder(cls) -> PartitionSize:
        return cls(SizeKind.REMAINDER)

    @property
    def is_remainder(self) -> bool:
        return self.kind is SizeKind.REMAINDER

    def to_dict(self) -> dict[str, Any]:
        if self.is_remainder:
            return {"kind": self.kind.value}
        return {"kind": self.kind.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PartitionSize:
        return cls(SizeKind(data["kind"]), int(data.get("value", 0)))


class FlagKind(Enum):
    BOOT = "boot"
    ESP = "esp"
    SWAP = "swap"
    LVM = "lvm"
    CUSTOM = "custom"


@dataclass(frozen=True)
class PartitionFlag:
    kind: FlagKind
    custom_name: str = ""

    @classmethod
    def boot(cls) -> PartitionFlag:
        return cls(FlagKind.BOOT)

    @classmethod
    def esp(cls) -> PartitionFlag:
        return cls(FlagKind.ESP)

    @classmethod
    def swap(cls) -> PartitionFlag:
        return cls(FlagKind.SWAP)

    @classmethod
    def lvm(cls) -> PartitionFlag:
        return cls(FlagKind.LVM)

    @classmethod
    def custom(cls, name: str) -> PartitionFlag:
        return cls(FlagKind.CUSTOM, name)

    @classmethod
    def parse(cls, value: str) -> PartitionFlag:
        try:
            kind = FlagKind(value.strip().lower())
        except ValueError:
            return cls.custom(value)
        if kind is FlagKind.CUSTOM:
            return cls.custom(value)
        return cls(kind)

    @property
    def name(self) -> str:
        """Flag name as understood by parted."""
        if self.kind is FlagKind.CUSTOM:
            return self.custom_name
        return self.kind.value


@dataclass(frozen=True)
class PartitionSpec:
    """One partition of a layout, in declaration order."""

    id: str
    filesystem: FileSystem
    size: PartitionSize
    mountpoint: Optional[str] = None
    flags: tuple[PartitionFlag, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "mountpoint": self.mountpoint,
            "filesystem": self.filesystem.label,
            "size": self.size.to_dict(),
            "flags": [flag.name for flag in self.flags],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PartitionSpec:
        return cls(
            id=data["id"],
            mountpoint=data.get("mountpoint"),
            filesystem=FileSystem.parse(data["filesystem"]),
            size=PartitionSize.from_dict(data["size"]),
            flags=tuple(PartitionFlag.parse(flag) for flag in data.get("flags", [])),
        )


@dataclass(frozen=True)
class PartitionRange:
    """Half-open MiB range ``[start_mib, end_mib)`` assigned to a partition."""

    start_mib: int
    end_mib: int

    @property
    def span_mib(self) -> int:
        return self.end_mib - self.start_mib


class DiskMode(Enum):
    USE_ENTIRE_DISK = "use_entire_disk"
    CUSTOM = "custom"


@dataclass(frozen=True)
class DiskPlan:
    """Partition layout requested for one target disk."""

    target: DiskIdentifier
    partitions: tuple[PartitionSpec, ...]
    mode: DiskMode = DiskMode.CUSTOM

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target.to_dict(),
            "mode": self.mode.value,
            "partitions": [spec.to_dict() for spec in self.partitions],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiskPlan:
        return cls(
            target=DiskIdentifier.from_dict(data["target"]),
            mode=DiskMode(data.get("mode", DiskMode.CUSTOM.value)),
            partitions=tuple(
                PartitionSpec.from_dict(entry) for entry in data.get("partitions", [])
            ),
        )


# ==============================================================================
# Installation Plan Domain
# ==============================================================================


class InstallStage(Enum):
    """Installation stages, declared in execution order."""

    PREPARE_ENVIRONMENT = "prepare_environment"
    PARTITION_DISKS = "partition_disks"
    FORMAT_FILESYSTEMS = "format_filesystems"
    MOUNT_TARGET = "mount_target"
    INSTALL_BASE_SYSTEM = "install_base_system"
    INSTALL_DESKTOP_ENVIRONMENT = "install_desktop_environment"
    CONFIGURE_SYSTEM = "configure_system"
    INSTALL_BOOTLOADER = "install_bootloader"
    FINALIZE = "finalize"

    @classmethod
    def ordered(cls) -> list[InstallStage]:
        return list(cls)

    @property
    def title(self) -> str:
        return self.value.replace("_", " ").capitalize()

    @property
    def is_terminal(self) -> bool:
        return self is InstallStage.FINALIZE


@dataclass(frozen=True)
class InstallStep:
    stage: InstallStage
    summary: str
    commands: tuple[CommandSpec, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class InstallPlan:
    """Ordered steps for one installation attempt."""

    steps: tuple[InstallStep, ...]

    def __iter__(self) -> Iterator[InstallStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def is_empty(self) -> bool:
        return not self.steps

    def command_count(self) -> int:
        return sum(len(step.commands) for step in self.steps)

    def step_for(self, stage: InstallStage) -> InstallStep:
        for step in self.steps:
            if step.stage is stage:
                return step
        raise KeyError(stage)
