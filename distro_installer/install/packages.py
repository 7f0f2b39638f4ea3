"""Package bootstrap and in-target command builders.

Packages are bootstrapped into the target root with pacstrap. Everything that
has to run *inside* the new system goes through arch-chroot:

    arch-chroot <root> systemctl enable <service>
    arch-chroot <root> sh -c '<script>'
"""

from __future__ import annotations

from typing import Iterable, Sequence

from distro_installer.storage.command import CommandSpec

TARGET_ROOT = "/mnt"

BASE_PACKAGES = (
    "base",
    "linux-zen",
    "linux-zen-firmware",
    "openssh",
    "networkmanager",
    "sudo",
    "grub",
    "efibootmgr",
)

DESKTOP_PACKAGES = (
    "gdm",
    "gnome-shell",
    "gnome-control-center",
    "gnome-terminal",
    "nautilus",
    "xdg-user-dirs",
    "gnome-text-editor",
)

DISPLAY_MANAGER_SERVICE = "gdm.service"
NETWORK_MANAGER_SERVICE = "NetworkManager.service"
SSH_SERVICE = "sshd.service"

DEFAULT_SERVICES = (DISPLAY_MANAGER_SERVICE, NETWORK_MANAGER_SERVICE, SSH_SERVICE)


def pacstrap_command(root: str, packages: Iterable[str]) -> CommandSpec:
    return CommandSpec("pacstrap", (root, *packages))


def install_base_packages(root: str = TARGET_ROOT) -> CommandSpec:
    return pacstrap_command(root, BASE_PACKAGES)


def install_desktop_packages(root: str = TARGET_ROOT) -> CommandSpec:
    return pacstrap_command(root, DESKTOP_PACKAGES)


def chroot_command(root: str, argv: Sequence[str]) -> CommandSpec:
    """Run ``argv`` inside the target root."""
    return CommandSpec("arch-chroot", (root, *argv))


def chroot_shell_command(root: str, script: str) -> CommandSpec:
    """Run a shell snippet inside the target root."""
    return chroot_command(root, ("sh", "-c", script))


def systemctl_enable_command(root: str, service: str) -> CommandSpec:
    return chroot_command(root, ("systemctl", "enable", service))


def enable_services_commands(
    root: str = TARGET_ROOT, services: Iterable[str] = DEFAULT_SERVICES
) -> list[CommandSpec]:
    return [systemctl_enable_command(root, service) for service in services]
