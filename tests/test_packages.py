"""Tests for package bootstrap and chroot command builders."""

from distro_installer.install import packages
from distro_installer.storage.command import CommandSpec


class TestPacstrap:
    def test_base_packages(self):
        command = packages.install_base_packages()

        assert command.program == "pacstrap"
        assert command.args[0] == "/mnt"
        assert command.args[1:5] == ("base", "linux-zen", "linux-zen-firmware", "openssh")
        assert "networkmanager" in command.args

    def test_desktop_packages(self):
        command = packages.install_desktop_packages("/target")

        assert command == CommandSpec(
            "pacstrap",
            (
                "/target",
                "gdm",
                "gnome-shell",
                "gnome-control-center",
                "gnome-terminal",
                "nautilus",
                "xdg-user-dirs",
                "gnome-text-editor",
            ),
        )

    def test_custom_package_list_keeps_order(self):
        command = packages.pacstrap_command("/mnt", ["vim", "git"])

        assert command.argv == ["pacstrap", "/mnt", "vim", "git"]


class TestChroot:
    def test_chroot_command(self):
        command = packages.chroot_command("/mnt", ["locale-gen"])

        assert command.argv == ["arch-chroot", "/mnt", "locale-gen"]

    def test_chroot_shell_command(self):
        command = packages.chroot_shell_command("/mnt", "echo ok > /etc/motd")

        assert command.argv == ["arch-chroot", "/mnt", "sh", "-c", "echo ok > /etc/motd"]


class TestServices:
    def test_default_services_in_order(self):
        commands = packages.enable_services_commands()

        assert [command.argv for command in commands] == [
            ["arch-chroot", "/mnt", "systemctl", "enable", "gdm.service"],
            ["arch-chroot", "/mnt", "systemctl", "enable", "NetworkManager.service"],
            ["arch-chroot", "/mnt", "systemctl", "enable", "sshd.service"],
        ]

    def test_custom_service_list(self):
        commands = packages.enable_services_commands("/target", ["bluetooth.service"])

        assert commands == [
            CommandSpec("arch-chroot", ("/target", "systemctl", "enable", "bluetooth.service"))
        ]

    def test_no_services(self):
        assert packages.enable_services_commands("/mnt", []) == []
