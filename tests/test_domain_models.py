"""Tests for domain models.

Pure value types: disks, partition declarations and install plans.
"""
from __future__ import annotations

import pytest

from distro_installer.domain import (
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
from distro_installer.storage.command import CommandSpec


# ==============================================================================
# Disk Tests
# ==============================================================================


class TestDiskIdentifier:
    """Test DiskIdentifier domain model."""

    def test_name_and_size(self, sata_disk):
        assert sata_disk.name == "sda"
        assert sata_disk.size_mib == 20480

    def test_format_label_with_model(self, sata_disk):
        assert sata_disk.format_label() == "sda QEMU HARDDISK (20GB)"

    def test_format_label_without_model(self):
        disk = DiskIdentifier("/dev/vda", 1536 * MIB)
        assert disk.format_label() == "vda 1.5GB"

    def test_immutable(self, sata_disk):
        with pytest.raises(AttributeError):
            sata_disk.path = "/dev/sdb"  # type: ignore[misc]

    def test_dict_round_trip(self, nvme_disk):
        assert DiskIdentifier.from_dict(nvme_disk.to_dict()) == nvme_disk


class TestHumanSize:
    def test_values(self):
        assert human_size(None) == "0B"
        assert human_size(512) == "512.0B"
        assert human_size(3 * MIB) == "3.0MB"


# ==============================================================================
# Partition Tests
# ==============================================================================


class TestFileSystem:
    """Test FileSystem parsing and labels."""

    @pytest.mark.parametrize(
        "value,kind",
        [
            ("ext4", FileSystemKind.EXT4),
            ("BTRFS", FileSystemKind.BTRFS),
            ("xfs", FileSystemKind.XFS),
            ("vfat", FileSystemKind.FAT32),
            ("fat32", FileSystemKind.FAT32),
            (" swap ", FileSystemKind.SWAP),
        ],
    )
    def test_parse_known(self, value, kind):
        assert FileSystem.parse(value).kind is kind

    def test_parse_unknown_keeps_name(self):
        fs = FileSystem.parse("mkfs.f2fs")

        assert fs == FileSystem.other("mkfs.f2fs")
        assert fs.label == "mkfs.f2fs"

    def test_is_swap(self):
        assert FileSystem.swap().is_swap
        assert not FileSystem.ext4().is_swap


class TestPartitionSize:
    def test_constructors(self):
        assert PartitionSize.exact_mib(2) == PartitionSize(SizeKind.EXACT_BYTES, 2 * MIB)
        assert PartitionSize.percentage(25).value == 25
        assert PartitionSize.remainder().is_remainder

    def test_remainder_dict_has_no_value(self):
        assert PartitionSize.remainder().to_dict() == {"kind": "remainder"}


class TestPartitionFlag:
    @pytest.mark.parametrize("value", ["boot", "esp", "swap", "lvm"])
    def test_parse_known(self, value):
        assert PartitionFlag.parse(value).name == value

    def test_parse_unknown_is_custom(self):
        flag = PartitionFlag.parse("legacy_boot")

        assert flag.kind is FlagKind.CUSTOM
        assert flag.name == "legacy_boot"


class TestDiskPlan:
    def test_dict_round_trip(self, custom_plan):
        assert DiskPlan.from_dict(custom_plan.to_dict()) == custom_plan

    def test_default_mode(self, sata_disk):
        assert DiskPlan(target=sata_disk, partitions=()).mode is DiskMode.CUSTOM

    def test_spec_dict(self):
        spec = PartitionSpec(
            id="esp",
            filesystem=FileSystem.fat32(),
            size=PartitionSize.exact_mib(512),
            mountpoint="/boot/efi",
            flags=(PartitionFlag.esp(),),
        )

        assert spec.to_dict() == {
            "id": "esp",
            "mountpoint": "/boot/efi",
            "filesystem": "fat32",
            "size": {"kind": "bytes", "value": 512 * MIB},
            "flags": ["esp"],
        }


class TestPartitionRange:
    def test_span(self):
        assert PartitionRange(1, 513).span_mib == 512


# ==============================================================================
# Install Plan Tests
# ==============================================================================


class TestInstallStage:
    def test_order(self):
        assert InstallStage.ordered() == [
            InstallStage.PREPARE_ENVIRONMENT,
            InstallStage.PARTITION_DISKS,
            InstallStage.FORMAT_FILESYSTEMS,
            InstallStage.MOUNT_TARGET,
            InstallStage.INSTALL_BASE_SYSTEM,
            InstallStage.INSTALL_DESKTOP_ENVIRONMENT,
            InstallStage.CONFIGURE_SYSTEM,
            InstallStage.INSTALL_BOOTLOADER,
            InstallStage.FINALIZE,
        ]

    def test_title(self):
        assert InstallStage.PARTITION_DISKS.title == "Partition disks"
        assert InstallStage.FINALIZE.title == "Finalize"

    def test_only_finalize_is_terminal(self):
        assert [stage for stage in InstallStage if stage.is_terminal] == [InstallStage.FINALIZE]


class TestInstallPlan:
    def test_counts_and_lookup(self):
        step = InstallStep(InstallStage.FINALIZE, "done", (CommandSpec("sync"),))
        plan = InstallPlan((InstallStep(InstallStage.PREPARE_ENVIRONMENT, "prep"), step))

        assert len(plan) == 2
        assert not plan.is_empty()
        assert plan.command_count() == 1
        assert plan.step_for(InstallStage.FINALIZE) is step
        assert list(plan)[0].commands == ()

    def test_missing_stage(self):
        with pytest.raises(KeyError):
            InstallPlan(()).step_for(InstallStage.FINALIZE)

    def test_empty(self):
        assert InstallPlan(()).is_empty()
