from .settings import (
    InstallerConfig,
    KeyboardSelection,
    LocaleSelection,
    NetworkConfig,
    UserAccount,
    load_config,
    save_config,
)


__all__ = [
    "InstallerConfig",
    "KeyboardSelection",
    "LocaleSelection",
    "NetworkConfig",
    "UserAccount",
    "load_config",
    "save_config",
]
