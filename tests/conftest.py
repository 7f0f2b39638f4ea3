"""
Pytest configuration and shared fixtures for distro-installer tests.

This module provides common fixtures and utilities used across all test modules.
"""

import json
from typing import Any, Dict, List

import pytest

from distro_installer.config.settings import InstallerConfig
from distro_installer.domain import (
    DiskIdentifier,
    DiskPlan,
    FileSystem,
    PartitionFlag,
    PartitionSize,
    PartitionSpec,
)
from distro_installer.storage.command import ScriptedCommandExecutor

GIB = 1024 ** 3


# ==============================================================================
# Device Mock Fixtures
# ==============================================================================


@pytest.fixture
def sata_disk() -> DiskIdentifier:
    """20 GiB SATA disk, the default install target in most tests."""
    return DiskIdentifier(path="/dev/sda", size_bytes=20 * GIB, label="QEMU HARDDISK")


@pytest.fixture
def nvme_disk() -> DiskIdentifier:
    """NVMe disk whose partitions need a ``p`` separator."""
    return DiskIdentifier(
        path="/dev/nvme0n1", size_bytes=512 * GIB, label="Samsung SSD 970 EVO"
    )


@pytest.fixture
def lsblk_rows() -> List[Dict[str, Any]]:
    """
    Rows as printed by ``lsblk --json --bytes -d -o NAME,SIZE,MODEL,TYPE``.
    """
    return [
        {"name": "sda", "size": 21474836480, "model": "QEMU HARDDISK   ", "type": "disk"},
        {"name": "sda1", "size": 536870912, "model": None, "type": "part"},
        {"name": "nvme0n1", "size": 549755813888, "model": "   ", "type": "disk"},
        {"name": "sr0", "size": 1073741312, "model": "QEMU DVD-ROM", "type": "rom"},
        {"name": "loop0", "size": 838860800, "model": None, "type": "loop"},
    ]


@pytest.fixture
def mock_lsblk_output(lsblk_rows) -> str:
    """JSON string representing lsblk output with several device types."""
    return json.dumps({"blockdevices": lsblk_rows})


@pytest.fixture
def mock_lsblk_empty() -> str:
    """Fixture providing empty lsblk output (no devices)."""
    return json.dumps({"blockdevices": []})


# ==============================================================================
# Command Executor Fixtures
# ==============================================================================


@pytest.fixture
def scripted_executor() -> ScriptedCommandExecutor:
    """Executor double where every unscripted command succeeds silently."""
    return ScriptedCommandExecutor()


@pytest.fixture
def strict_executor() -> ScriptedCommandExecutor:
    """Executor double that rejects any command it was not scripted for."""
    return ScriptedCommandExecutor(strict=True)


# ==============================================================================
# Layout Fixtures
# ==============================================================================


@pytest.fixture
def custom_plan(sata_disk) -> DiskPlan:
    """ESP, swap, ext4 root and a btrfs /home filling the rest."""
    return DiskPlan(
        target=sata_disk,
        partitions=(
            PartitionSpec(
                id="esp",
                mountpoint="/boot/efi",
                filesystem=FileSystem.fat32(),
                size=PartitionSize.exact_mib(512),
                flags=(PartitionFlag.esp(), PartitionFlag.boot()),
            ),
            PartitionSpec(
                id="swap",
                filesystem=FileSystem.swap(),
                size=PartitionSize.exact_mib(2048),
                flags=(PartitionFlag.swap(),),
            ),
            PartitionSpec(
                id="root",
                mountpoint="/",
                filesystem=FileSystem.ext4(),
                size=PartitionSize.percentage(50),
            ),
            PartitionSpec(
                id="home",
                mountpoint="/home",
                filesystem=FileSystem.btrfs(),
                size=PartitionSize.remainder(),
            ),
        ),
    )


@pytest.fixture
def default_config() -> InstallerConfig:
    """Configuration with defaults and no disk selected."""
    return InstallerConfig()


@pytest.fixture
def selected_config(sata_disk) -> InstallerConfig:
    """Configuration with /dev/sda selected and no explicit layout."""
    config = InstallerConfig()
    config.discovered_disks = [sata_disk]
    config.selected_disk = sata_disk
    return config
