"""Installer configuration with defaults and JSON persistence."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from distro_installer.domain import DiskIdentifier, DiskPlan
from distro_installer.storage.exceptions import ConfigurationError


CONFIG_PATH = Path(
    os.environ.get(
        "DISTRO_INSTALLER_CONFIG_PATH",
        Path.home() / ".config" / "distro-installer" / "config.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_LANGUAGE = "en"
DEFAULT_REGION = "US"
DEFAULT_KEYBOARD_LAYOUT = "us"
DEFAULT_TIMEZONE = "UTC"
DEFAULT_HOSTNAME = "arm-distro"
DEFAULT_ADMIN_USERNAME = "armdistro"
DEFAULT_ADMIN_FULL_NAME = "Arm Distro"
DEFAULT_PASSWORD = "armdistro"


@dataclass
class LocaleSelection:
    language: str = DEFAULT_LANGUAGE
    region: str = DEFAULT_REGION

    @property
    def locale_name(self) -> str:
        """glibc locale name, e.g. en_US.UTF-8."""
        return f"{self.language}_{self.region}.UTF-8"


@dataclass
class KeyboardSelection:
    layouts: list[str] = field(default_factory=lambda: [DEFAULT_KEYBOARD_LAYOUT])
    variant: Optional[str] = None


@dataclass
class UserAccount:
    username: str
    full_name: str = ""
    password_hash: Optional[str] = None
    is_admin: bool = False

    @classmethod
    def default_admin(cls) -> UserAccount:
        return cls(
            username=DEFAULT_ADMIN_USERNAME,
            full_name=DEFAULT_ADMIN_FULL_NAME,
            is_admin=True,
        )


def _user_to_dict(user: UserAccount) -> dict[str, Any]:
    data: dict[str, Any] = {
        "username": user.username,
        "full_name": user.full_name,
        "is_admin": user.is_admin,
    }
    if user.password_hash is not None:
        data["password_hash"] = user.password_hash
    return data


@dataclass
class NetworkConfig:
    hostname: str = DEFAULT_HOSTNAME
    enable_network_manager: bool = True


@dataclass
class InstallerConfig:
    locale: LocaleSelection = field(default_factory=LocaleSelection)
    keyboard: KeyboardSelection = field(default_factory=KeyboardSelection)
    timezone: Optional[str] = None
    target: Optional[DiskPlan] = None
    users: list[UserAccount] = field(
        default_factory=lambda: [UserAccount.default_admin()]
    )
    network: NetworkConfig = field(default_factory=NetworkConfig)
    discovered_disks: list[DiskIdentifier] = field(default_factory=list)
    selected_disk: Optional[DiskIdentifier] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "locale": {"language": self.locale.language, "region": self.locale.region},
            "keyboard": {
                "layouts": list(self.keyboard.layouts),
                "variant": self.keyboard.variant,
            },
            "timezone": self.timezone,
            "target": self.target.to_dict() if self.target else None,
            "users": [_user_to_dict(user) for user in self.users],
            "network": {
                "hostname": self.network.hostname,
                "enable_network_manager": self.network.enable_network_manager,
            },
            "discovered_disks": [disk.to_dict() for disk in self.discovered_disks],
            "selected_disk": (
                self.selected_disk.to_dict() if self.selected_disk else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstallerConfig:
        config = cls()
        if "locale" in data:
            config.locale = LocaleSelection(**data["locale"])
        if "keyboard" in data:
            config.keyboard = KeyboardSelection(**data["keyboard"])
        config.timezone = data.get("timezone", config.timezone)
        if data.get("target"):
            config.target = DiskPlan.from_dict(data["target"])
        if "users" in data:
            config.users = [UserAccount(**user) for user in data["users"]]
        if "network" in data:
            config.network = NetworkConfig(**data["network"])
        config.discovered_disks = [
            DiskIdentifier.from_dict(disk) for disk in data.get("discovered_disks", [])
        ]
        if data.get("selected_disk"):
            config.selected_disk = DiskIdentifier.from_dict(data["selected_disk"])
        return config


def load_config(path: Optional[Path] = None) -> InstallerConfig:
    """Load configuration from JSON, falling back to defaults if absent."""
    config_path = path or CONFIG_PATH
    if not config_path.exists():
        return InstallerConfig()
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as error:
        raise ConfigurationError(str(config_path), f"invalid JSON: {error}") from error
    if not isinstance(data, dict):
        raise ConfigurationError(str(config_path), "top-level value must be an object")
    try:
        return InstallerConfig.from_dict(data)
    except (KeyError, TypeError, ValueError) as error:
        raise ConfigurationError(str(config_path), str(error)) from error


def save_config(config: InstallerConfig, path: Optional[Path] = None) -> None:
    config_path = path or CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        json.dumps(config.to_dict(), indent=2, sort_keys=True),
        encoding="utf-8",
    )


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_locale(config: InstallerConfig) -> None:
    if _is_blank(config.locale.language):
        raise ConfigurationError("locale.language", "locale language cannot be empty")
    if _is_blank(config.locale.region):
        raise ConfigurationError("locale.region", "locale region cannot be empty")


def validate_network(config: InstallerConfig) -> None:
    if _is_blank(config.network.hostname):
        raise ConfigurationError("network.hostname", "hostname cannot be empty")


def validate_users(config: InstallerConfig) -> None:
    for user in config.users:
        if _is_blank(user.username):
            raise ConfigurationError("users.username", "username cannot be empty")
