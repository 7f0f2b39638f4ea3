import argparse
from pathlib import Path

from distro_installer.config.settings import load_config
from distro_installer.install.backend import Backend, SharedState
from distro_installer.logging import LoggerFactory, setup_logging
from distro_installer.storage.devices import match_disk
from distro_installer.storage.exceptions import InstallerError


def _print_plan(plan) -> None:
    for number, step in enumerate(plan, 1):
        print(f"[{number}/{len(plan)}] {step.stage.title}: {step.summary}")
        for command in step.commands:
            print(f"    $ {command.display()}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Arch distro installer")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable verbose debug output")
    parser.add_argument("--trace", action="store_true", help="Log raw command output")
    parser.add_argument("-c", "--config", type=Path, help="Installer configuration JSON file")
    parser.add_argument("--log-dir", type=Path, help="Directory for log files")
    parser.add_argument("--list-disks", action="store_true", help="List installable disks and exit")
    parser.add_argument("--disk", help="Install to this disk (e.g. /dev/sda)")
    parser.add_argument(
        "--execute",
        action="store_true",
        help="Run the plan instead of only printing it",
    )
    args = parser.parse_args(argv)

    setup_logging(debug=args.debug, trace=args.trace, log_dir=args.log_dir)
    log = LoggerFactory.for_system()

    try:
        state = SharedState(load_config(args.config))
        backend = Backend(state)

        if args.list_disks:
            disks = backend.list_disks()
            if not disks:
                print("No disks found")
            for disk in disks:
                print(f"{disk.path}\t{disk.format_label()}")
            return 0

        if args.disk:
            disks = backend.list_disks()
            selected = match_disk(disks, args.disk)
            if selected is None:
                log.error(f"Disk {args.disk} not found")
                return 1

            def select(config):
                config.discovered_disks = disks
                config.selected_disk = selected

            state.update(select)

        plan = backend.begin_installation()
        if not args.execute:
            _print_plan(plan)
            return 0
        return 0 if backend.execute_plan_stream(plan, print) else 1
    except InstallerError as error:
        log.error(str(error))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
