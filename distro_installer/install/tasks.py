"""Install plan construction.

``build_plan`` turns a configuration snapshot into exactly nine steps, one
per ``InstallStage`` and always in stage order:

    PrepareEnvironment -> PartitionDisks -> FormatFilesystems -> MountTarget
    -> InstallBaseSystem -> InstallDesktopEnvironment -> ConfigureSystem
    -> InstallBootloader -> Finalize

No stage is ever dropped. A stage whose input is missing (no disk selected)
keeps its place with an empty command list and a summary saying why.

Mount Bookkeeping:
    Mounts are ordered parents first (``/`` before ``/boot/efi``), keeping
    declaration order among mountpoints of equal depth. Finalize unmounts
    them in exactly the reverse order, deactivates swap first, and adds a
    final ``umount <root>`` only when the root target was never mounted by
    the plan itself, so the root is unmounted exactly once.

Failure:
    The builder raises only for invalid input: configuration values
    (ConfigurationError), partition layouts (PartitionLayoutError) and
    filesystem declarations (FilesystemError). Building never runs anything.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Optional

from distro_installer.config.settings import (
    DEFAULT_PASSWORD,
    DEFAULT_TIMEZONE,
    InstallerConfig,
    UserAccount,
    validate_locale,
    validate_network,
    validate_users,
)
from distro_installer.domain import (
    DiskPlan,
    FlagKind,
    InstallPlan,
    InstallStage,
    InstallStep,
    PartitionSpec,
)
from distro_installer.logging import LoggerFactory
from distro_installer.storage.command import CommandSpec
from distro_installer.storage.filesystem import (
    activate_swap_command,
    deactivate_swap_command,
    mkdir_command,
    mkfs_command,
    mount_command,
    sync_command,
    unmount_command,
)
from distro_installer.storage.partition import (
    ESP_MOUNTPOINT,
    build_command_plan,
    default_plan_for_disk,
    describe_partition,
    partition_device_path,
    validate_plan,
)

from .packages import (
    DEFAULT_SERVICES,
    NETWORK_MANAGER_SERVICE,
    TARGET_ROOT,
    chroot_command,
    chroot_shell_command,
    enable_services_commands,
    install_base_packages,
    install_desktop_packages,
)

log = LoggerFactory.for_install(job_id="plan")

GRUB_TARGET = "arm64-efi"
BOOTLOADER_ID = "arm-distro"
SUDOERS_RULE_PATH = "/etc/sudoers.d/10-installer"
NO_DISK_REASON = "No target disk selected"


@dataclass(frozen=True)
class PlannedPartition:
    index: int  # 1-based, matches the parted partition number
    spec: PartitionSpec
    device_path: str


@dataclass(frozen=True)
class PlannedMount:
    partition: PlannedPartition
    command: CommandSpec

    @property
    def target(self) -> str:
        return self.command.args[-1]


def planned_partitions(plan: DiskPlan) -> list[PlannedPartition]:
    return [
        PlannedPartition(index, spec, partition_device_path(plan.target.path, index))
        for index, spec in enumerate(plan.partitions, 1)
    ]


def _mount_depth(mountpoint: str) -> int:
    return len([part for part in mountpoint.split("/") if part])


def _normalize_target(path: str) -> str:
    return path.rstrip("/") or "/"


def plan_mounts(partitions: list[PlannedPartition], root: str) -> list[PlannedMount]:
    """Mount commands for ``partitions``, parents before children."""
    mounts = []
    for partition in partitions:
        command = mount_command(partition.spec, partition.device_path, root)
        if command is not None:
            mounts.append(PlannedMount(partition, command))
    return sorted(mounts, key=lambda mount: _mount_depth(mount.partition.spec.mountpoint))


def resolve_disk_plan(config: InstallerConfig) -> tuple[Optional[DiskPlan], bool]:
    """Return the layout to apply and whether it was synthesized."""
    if config.target is not None:
        validate_plan(config.selected_disk or config.target.target, config.target)
        return config.target, False
    if config.selected_disk is not None:
        return default_plan_for_disk(config.selected_disk), True
    return None, False


def _esp_mountpoint(plan: Optional[DiskPlan]) -> str:
    if plan is not None:
        for spec in plan.partitions:
            if spec.mountpoint and any(flag.kind is FlagKind.ESP for flag in spec.flags):
                return spec.mountpoint
    return ESP_MOUNTPOINT


def _user_commands(root: str, user: UserAccount) -> list[CommandSpec]:
    useradd = ["useradd", "-m"]
    if user.is_admin:
        useradd += ["-G", "wheel"]
    if user.full_name:
        useradd += ["-c", user.full_name]
    useradd.append(user.username)

    commands = [chroot_command(root, useradd)]
    if user.password_hash:
        commands.append(
            chroot_command(root, ("usermod", "-p", user.password_hash, user.username))
        )
    else:
        credentials = shlex.quote(f"{user.username}:{DEFAULT_PASSWORD}")
        commands.append(chroot_shell_command(root, f"echo {credentials} | chpasswd"))
    return commands


def configure_system_commands(config: InstallerConfig, root: str) -> list[CommandSpec]:
    locale_name = config.locale.locale_name
    timezone = config.timezone or DEFAULT_TIMEZONE
    hostname = config.network.hostname

    commands = [
        chroot_shell_command(
            root,
            f"echo {shlex.quote(locale_name + ' UTF-8')} > /etc/locale.gen && locale-gen",
        ),
        chroot_shell_command(
            root, f"echo {shlex.quote('LANG=' + locale_name)} > /etc/locale.conf"
        ),
    ]
    if config.keyboard.layouts:
        keymap = config.keyboard.layouts[0]
        commands.append(
            chroot_shell_command(
                root, f"echo {shlex.quote(f'KEYMAP={keymap}')} > /etc/vconsole.conf"
            )
        )
    commands += [
        chroot_shell_command(root, f"echo {shlex.quote(hostname)} > /etc/hostname"),
        chroot_command(
            root, ("ln", "-sf", f"/usr/share/zoneinfo/{timezone}", "/etc/localtime")
        ),
        chroot_command(root, ("hwclock", "--systohc")),
    ]
    for user in config.users:
        commands += _user_commands(root, user)
    commands.append(
        chroot_shell_command(
            root,
            f"echo '%wheel ALL=(ALL:ALL) NOPASSWD: ALL' > {SUDOERS_RULE_PATH}"
            f" && chmod 440 {SUDOERS_RULE_PATH}",
        )
    )

    services = [
        service
        for service in DEFAULT_SERVICES
        if service != NETWORK_MANAGER_SERVICE or config.network.enable_network_manager
    ]
    commands += enable_services_commands(root, services)
    return commands


def genfstab_command(root: str) -> CommandSpec:
    fstab = shlex.quote(f"{root}/etc/fstab")
    return CommandSpec("sh", ("-c", f"genfstab -U {shlex.quote(root)} >> {fstab}"))


def bootloader_commands(root: str, esp_mountpoint: str) -> list[CommandSpec]:
    return [
        chroot_command(
            root,
            (
                "grub-install",
                f"--target={GRUB_TARGET}",
                f"--efi-directory={esp_mountpoint}",
                f"--bootloader-id={BOOTLOADER_ID}",
            ),
        ),
        chroot_command(
            root,
            ("sed", "-i", "s/^GRUB_DEFAULT=.*/GRUB_DEFAULT=0/", "/etc/default/grub"),
        ),
        chroot_command(root, ("grub-mkconfig", "-o", "/boot/grub/grub.cfg")),
        chroot_command(root, ("mkinitcpio", "-P")),
    ]


def finalize_commands(
    mount_targets: list[str], swap_devices: list[str], root: str
) -> list[CommandSpec]:
    commands = [sync_command()]
    commands += [deactivate_swap_command(device) for device in swap_devices]
    commands += [unmount_command(target) for target in reversed(mount_targets)]
    normalized_root = _normalize_target(root)
    if not any(_normalize_target(target) == normalized_root for target in mount_targets):
        commands.append(unmount_command(root))
    return commands


def build_plan(config: InstallerConfig, root: str = TARGET_ROOT) -> InstallPlan:
    """Build the ordered install plan for a configuration snapshot."""
    validate_locale(config)
    validate_network(config)
    validate_users(config)

    disk_plan, synthesized = resolve_disk_plan(config)
    steps = []

    if disk_plan is not None:
        prepare_summary = (
            f"Prepare live environment for installation to {disk_plan.target.path}"
        )
    else:
        prepare_summary = "Prepare live environment and validate selections"
    steps.append(InstallStep(InstallStage.PREPARE_ENVIRONMENT, prepare_summary))

    mount_targets: list[str] = []
    swap_devices: list[str] = []

    if disk_plan is None:
        steps += [
            InstallStep(
                InstallStage.PARTITION_DISKS,
                f"{NO_DISK_REASON}; partitioning skipped",
            ),
            InstallStep(
                InstallStage.FORMAT_FILESYSTEMS,
                f"{NO_DISK_REASON}; formatting skipped",
            ),
            InstallStep(
                InstallStage.MOUNT_TARGET,
                f"{NO_DISK_REASON}; mounting skipped",
            ),
        ]
    else:
        disk_path = disk_plan.target.path
        if synthesized:
            partition_summary = f"Partition disk {disk_path} using default layout"
        else:
            partition_summary = f"Apply partition layout to {disk_path}"
        steps.append(
            InstallStep(
                InstallStage.PARTITION_DISKS,
                partition_summary,
                tuple(build_command_plan(disk_plan)),
            )
        )

        partitions = planned_partitions(disk_plan)
        format_commands = [
            mkfs_command(partition.device_path, partition.spec) for partition in partitions
        ]
        steps.append(
            InstallStep(
                InstallStage.FORMAT_FILESYSTEMS,
                "Format partitions: "
                + ", ".join(describe_partition(p.spec) for p in partitions),
                tuple(format_commands),
            )
        )

        mount_step_commands = []
        for mount in plan_mounts(partitions, root):
            mount_step_commands.append(mkdir_command(mount.target))
            mount_step_commands.append(mount.command)
            mount_targets.append(mount.target)
        for partition in partitions:
            if partition.spec.filesystem.is_swap:
                mount_step_commands.append(activate_swap_command(partition.device_path))
                swap_devices.append(partition.device_path)
        steps.append(
            InstallStep(
                InstallStage.MOUNT_TARGET,
                f"Mount target filesystems under {root}",
                tuple(mount_step_commands),
            )
        )

    steps += [
        InstallStep(
            InstallStage.INSTALL_BASE_SYSTEM,
            "Install minimal Arch base system",
            (
                install_base_packages(root),
                genfstab_command(root),
            ),
        ),
        InstallStep(
            InstallStage.INSTALL_DESKTOP_ENVIRONMENT,
            "Install GNOME desktop packages",
            (install_desktop_packages(root),),
        ),
        InstallStep(
            InstallStage.CONFIGURE_SYSTEM,
            "Configure locale, users, networking, and services",
            tuple(configure_system_commands(config, root)),
        ),
        InstallStep(
            InstallStage.INSTALL_BOOTLOADER,
            "Install and configure bootloader",
            tuple(bootloader_commands(root, _esp_mountpoint(disk_plan))),
        ),
        InstallStep(
            InstallStage.FINALIZE,
            "Finalize installation and clean up mounts",
            tuple(finalize_commands(mount_targets, swap_devices, root)),
        ),
    ]

    plan = InstallPlan(tuple(steps))
    log.debug(
        f"Built install plan with {len(plan)} steps and {plan.command_count()} commands"
    )
    return plan
