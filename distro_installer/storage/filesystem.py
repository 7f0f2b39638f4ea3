"""Format, mount and swap command builders.

Supported Filesystems:
    ext4:   mkfs.ext4 -F <device>
    btrfs:  mkfs.btrfs -f <device>
    xfs:    mkfs.xfs -f <device>
    fat32:  mkfs.fat -F 32 <device>   (EFI system partitions)
    swap:   mkswap <device>
    other:  <name> <device>           (custom tool invoked verbatim)

Every builder is a pure function of its arguments.
"""

from __future__ import annotations

from typing import Optional

from distro_installer.domain import FileSystemKind, PartitionSpec
from distro_installer.storage.command import CommandSpec
from distro_installer.storage.exceptions import FilesystemError

_MKFS_TOOLS = {
    FileSystemKind.EXT4: ("mkfs.ext4", ("-F",)),
    FileSystemKind.BTRFS: ("mkfs.btrfs", ("-f",)),
    FileSystemKind.XFS: ("mkfs.xfs", ("-f",)),
    FileSystemKind.FAT32: ("mkfs.fat", ("-F", "32")),
    FileSystemKind.SWAP: ("mkswap", ()),
}


def mkfs_command(device_path: str, spec: PartitionSpec) -> CommandSpec:
    filesystem = spec.filesystem
    if filesystem.kind is FileSystemKind.OTHER:
        if not filesystem.name.strip():
            raise FilesystemError(
                "custom filesystem identifier cannot be empty", spec.id
            )
        return CommandSpec(filesystem.name, (device_path,))

    program, flags = _MKFS_TOOLS[filesystem.kind]
    return CommandSpec(program, (*flags, device_path))


def mount_target(root: str, mountpoint: str) -> str:
    """Join ``root`` and ``mountpoint`` with exactly one slash at the seam.

    /mnt + / -> /mnt/, /mnt + /boot/efi -> /mnt/boot/efi, /mnt + boot -> /mnt/boot
    """
    if root.endswith("/") and mountpoint.startswith("/"):
        return root + mountpoint[1:]
    if root.endswith("/") or mountpoint.startswith("/"):
        return root + mountpoint
    return f"{root}/{mountpoint}"


def mount_command(
    spec: PartitionSpec, device_path: str, root: str
) -> Optional[CommandSpec]:
    if spec.filesystem.is_swap or spec.mountpoint is None:
        return None
    if not spec.mountpoint:
        raise FilesystemError("mountpoint cannot be empty when provided", spec.id)
    return CommandSpec("mount", (device_path, mount_target(root, spec.mountpoint)))


def activate_swap_command(device_path: str) -> CommandSpec:
    return CommandSpec("swapon", (device_path,))


def deactivate_swap_command(device_path: str) -> CommandSpec:
    return CommandSpec("swapoff", (device_path,))


def mkdir_command(path: str) -> CommandSpec:
    return CommandSpec("mkdir", ("-p", path))


def unmount_command(target: str) -> CommandSpec:
    return CommandSpec("umount", (target,))


def sync_command() -> CommandSpec:
    return CommandSpec("sync")
