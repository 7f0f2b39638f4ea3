"""Domain models for installation planning."""

from __future__ import annotations

from .models import (
    MIB,
    DiskIdentifier,
    DiskMode,
    DiskPlan,
    FileSystem,
    FileSystemKind,
    FlagKind,
    InstallPlan,
    InstallStage,
    InstallStep,
    PartitionFlag,
    PartitionRange,
    PartitionSize,
    PartitionSpec,
    SizeKind,
    human_size,
)


__all__ = [
    "MIB",
    "DiskIdentifier",
    "DiskMode",
    "DiskPlan",
    "FileSystem",
    "FileSystemKind",
    "FlagKind",
    "InstallPlan",
    "InstallStage",
    "InstallStep",
    "PartitionFlag",
    "PartitionRange",
    "PartitionSize",
    "PartitionSpec",
    "SizeKind",
    "human_size",
]
