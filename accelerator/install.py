"""
Install the udev rule, the systemd unit template and the example device
config.

Usage:
    sudo accelerator-install
    accelerator-install --root /tmp/staging --no-reload
"""

import argparse
import os
import shlex
import shutil
import subprocess
import sys
from importlib import resources
from pathlib import Path
from typing import List, Optional

from .config import SYSTEM_CONFIG_DIR
from .errors import InstallError
from .main import EXIT_ERROR

RULE_NAME = '99-accelerator.rules'
UNIT_NAME = 'accelerator@.service'
EXAMPLE_DEVICE = 'logitechrecv'

RULES_DIR = Path('etc/udev/rules.d')
UNIT_DIR = Path('etc/systemd/system')

RELOAD_COMMANDS = [
    ['udevadm', 'control', '--reload-rules'],
    ['systemctl', 'daemon-reload'],
]


def read_data(name: str) -> str:
    """Read a file shipped in accelerator/data."""
    return resources.files('accelerator').joinpath('data', name).read_text()


def find_launcher() -> str:
    """Command line systemd should use to start accelerator-launch."""
    launcher = shutil.which('accelerator-launch')
    if launcher:
        return launcher
    return f"{shlex.quote(sys.executable)} -m accelerator.launch"


def find_program() -> str:
    """Command line accelerator-launch should exec under systemd's PATH."""
    program = shutil.which('accelerator')
    if program:
        return program
    return f"{shlex.quote(sys.executable)} -m accelerator"


def render_unit(launcher: str, program: str) -> str:
    unit = read_data(UNIT_NAME)
    return unit.replace('@LAUNCH@', launcher).replace('@PROGRAM@', program)


def _under_root(root: Path, path: Path) -> Path:
    return root / path.relative_to(path.anchor)


def plan(root: Path, launcher: str, program: str) -> List[tuple]:
    """(destination, contents, overwrite) for every file to install."""
    config_dir = _under_root(root, SYSTEM_CONFIG_DIR)
    return [
        (root / RULES_DIR / RULE_NAME, read_data(RULE_NAME), True),
        (root / UNIT_DIR / UNIT_NAME, render_unit(launcher, program), True),
        (config_dir / EXAMPLE_DEVICE, read_data(EXAMPLE_DEVICE), False),
    ]


def install(root: Path = Path('/'), dry_run: bool = False, reload: bool = True,
            launcher: Optional[str] = None, program: Optional[str] = None) -> List[Path]:
    """
    Write the artifacts below `root`. Returns the paths written.

    Device configs that already exist are left alone.
    """
    if launcher is None:
        launcher = find_launcher()
    if program is None:
        program = find_program()

    written = []
    for dest, contents, overwrite in plan(root, launcher, program):
        if dest.exists() and not overwrite:
            print(f"✓ Keeping existing {dest}")
            continue
        if dry_run:
            print(f"Would write {dest}")
            continue
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            with open(dest, 'w') as f:
                f.write(contents)
        except OSError as e:
            raise InstallError(f"Cannot write {dest}: {e.strerror or e}")
        print(f"✓ Wrote {dest}")
        written.append(dest)

    if reload and not dry_run:
        reload_daemons()

    return written


def reload_daemons():
    """Make udev and systemd pick up the new files."""
    for cmd in RELOAD_COMMANDS:
        print(f"Running: {' '.join(cmd)}")
        try:
            subprocess.run(cmd, check=True)
        except FileNotFoundError:
            raise InstallError(f"{cmd[0]} not found")
        except subprocess.CalledProcessError as e:
            raise InstallError(f"{' '.join(cmd)} failed with code {e.returncode}")


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        prog='accelerator-install',
        description='Install the accelerator udev rule and systemd unit.'
    )
    parser.add_argument('--root', type=Path, default=Path('/'),
                        help='Install below this directory (default: /)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Show what would be written')
    parser.add_argument('--no-reload', dest='reload', action='store_false',
                        help='Do not reload udev and systemd')
    args = parser.parse_args(argv)

    if args.root == Path('/') and not args.dry_run and os.geteuid() != 0:
        print("✗ This script must be run as root (e.g. sudo) to install into /")
        sys.exit(EXIT_ERROR)

    try:
        install(args.root, dry_run=args.dry_run, reload=args.reload)
    except InstallError as e:
        print(f"✗ {e}")
        sys.exit(EXIT_ERROR)

    if not args.dry_run:
        print("\nDone. Replug the receiver to start the accelerator.")
        print(f"Device arguments live in {SYSTEM_CONFIG_DIR / EXAMPLE_DEVICE}")


if __name__ == '__main__':
    main()
